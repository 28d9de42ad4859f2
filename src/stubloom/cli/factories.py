from pathlib import Path
from typing import Optional

from stubloom.config import StubloomConfig, load_config_from_path
from stubloom.lang.python import GriffePythonParser
from stubloom.stubgen import SourceTreeWalker, StubGenerator, StubMerger


def make_config(
    source_root: Path,
    config_path: Optional[Path] = None,
    root_package: Optional[str] = None,
) -> StubloomConfig:
    # Without an explicit config, look next to the current project.
    search_from = config_path if config_path is not None else Path.cwd()
    return load_config_from_path(
        search_from,
        root_package=root_package,
        default_root_package=source_root.resolve().name,
    )


def make_walker(config: StubloomConfig) -> SourceTreeWalker:
    # Composition root: assemble the dependencies
    parser = GriffePythonParser()
    merger = StubMerger(generator=StubGenerator())
    return SourceTreeWalker(config, parser=parser, merger=merger)
