from pathlib import Path


class StubgenError(Exception):
    """Base class for failures that abort a whole generation run."""


class SourceRootNotFoundError(StubgenError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Source root does not exist or is not a directory: {path}")


class DestinationError(StubgenError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot use destination {path}: {reason}")

