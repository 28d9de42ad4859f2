import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Union


class FileSystemAdapter(Protocol):
    def write_text(self, path: Path, content: str) -> None: ...
    def exists(self, path: Path) -> bool: ...
    def read_text(self, path: Path) -> str: ...


class RealFileSystem:
    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write next to the target and swap it in, so readers never see a
        # truncated stub.
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def exists(self, path: Path) -> bool:
        return path.exists()

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")


@dataclass
class FileOp(ABC):
    path: Path

    @abstractmethod
    def execute(self, fs: FileSystemAdapter, root: Path) -> bool:
        """Applies the operation; returns False when the disk was left as is."""

    @abstractmethod
    def describe(self) -> str: ...


@dataclass
class WriteFileOp(FileOp):
    content: str

    def execute(self, fs: FileSystemAdapter, root: Path) -> bool:
        target = root / self.path
        if fs.exists(target) and fs.read_text(target) == self.content:
            return False
        fs.write_text(target, self.content)
        return True

    def describe(self) -> str:
        return f"[WRITE] {self.path}"


class TransactionManager:
    """
    Collects stub writes relative to `root_path` and applies them on commit.

    Nothing touches the disk before `commit()`; a transaction that is never
    committed leaves no trace. Writes whose content already matches the file
    on disk are dropped, so an unchanged stub keeps its timestamp.
    """

    def __init__(self, root_path: Path, fs: Optional[FileSystemAdapter] = None):
        self.root_path = root_path
        self.fs = fs or RealFileSystem()
        self._ops: List[FileOp] = []

    def add_write(self, path: Union[str, Path], content: str) -> None:
        self._ops.append(WriteFileOp(Path(path), content))

    def preview(self) -> List[str]:
        return [op.describe() for op in self._ops]

    def commit(self) -> List[Path]:
        """Returns the paths actually changed on disk."""
        changed = [op.path for op in self._ops if op.execute(self.fs, self.root_path)]
        self._ops.clear()
        return changed

    def rollback(self) -> None:
        self._ops.clear()

    @property
    def pending_count(self) -> int:
        return len(self._ops)
