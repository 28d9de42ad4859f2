import logging
from pathlib import Path
from typing import List, Optional, Tuple

import libcst as cst

from stubloom.common import bus
from stubloom.common.transaction import TransactionManager
from stubloom.config import StubloomConfig
from stubloom.index import SourceIndex
from stubloom.lang.python import GriffePythonParser
from stubloom.needle import L
from stubloom.spec import GenerationReport, LanguageParserProtocol, SourceModule
from .builder import StubContext, StubFileBuilder
from .exceptions import DestinationError, SourceRootNotFoundError
from .merger import StubMerger

log = logging.getLogger(__name__)


class SourceTreeWalker:
    """
    Runs one generation pass over a package directory.

    Output mirrors the source relative to the package's parent directory, so
    `site-packages/pkg/sub/mod.py` becomes `<destination>/pkg/sub/mod.pyi`.
    Each stub is written in its own transaction once fully rendered.
    """

    def __init__(
        self,
        config: StubloomConfig,
        parser: Optional[LanguageParserProtocol] = None,
        merger: Optional[StubMerger] = None,
    ):
        self.config = config
        self.parser = parser or GriffePythonParser()
        self.merger = merger or StubMerger()

    # --- Paths ---

    def _validate(self, source_root: Path, destination: Path) -> None:
        if not source_root.is_dir():
            raise SourceRootNotFoundError(source_root)
        if destination.exists() and not destination.is_dir():
            raise DestinationError(destination, "not a directory")
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DestinationError(destination, str(e)) from e

    def is_excluded(self, relative_path: Path) -> bool:
        components = list(relative_path.parent.parts) + [relative_path.stem]
        return any(part in self.config.excluded_paths for part in components)

    def output_path(self, relative_path: Path) -> Path:
        return relative_path.with_suffix(self.config.stub_suffix)

    def discover(self, source_root: Path) -> Tuple[List[Path], List[Path]]:
        """Returns (modules to stub, skipped files), relative to the root's parent."""
        base = source_root.parent
        selected: List[Path] = []
        skipped: List[Path] = []
        for path in sorted(source_root.rglob("*")):
            if not path.is_file() or path.suffix not in (".py", ".pyi"):
                continue
            relative = path.relative_to(base)
            if path.suffix == ".pyi" or self.is_excluded(relative):
                skipped.append(relative)
            else:
                selected.append(relative)
        return selected, skipped

    # --- Phases ---

    def _parse_all(
        self, base: Path, files: List[Path], report: GenerationReport
    ) -> List[SourceModule]:
        modules: List[SourceModule] = []
        for relative in files:
            bus.debug(L.debug.log.scan_path, path=relative.as_posix())
            try:
                content = (base / relative).read_text(encoding="utf-8")
                module = self.parser.parse(content, file_path=relative.as_posix())
                modules.append(module)
            except Exception as e:
                bus.error(L.error.parse.source, path=relative.as_posix(), error=e)
                report.failed.append(relative.as_posix())
        return modules

    def _existing_stub(
        self, destination: Path, seed: Optional[Path], output: Path
    ) -> str:
        target = destination / output
        if target.is_file():
            return target.read_text(encoding="utf-8")
        if seed is not None and (seed / output).is_file():
            bus.debug(L.debug.log.seed, path=(seed / output).as_posix())
            return (seed / output).read_text(encoding="utf-8")
        return ""

    def _process_module(
        self,
        module: SourceModule,
        context: StubContext,
        destination: Path,
        seed: Optional[Path],
        report: GenerationReport,
    ) -> None:
        output = self.output_path(Path(module.file_path))
        display = output.as_posix()

        builder = StubFileBuilder(module, context)
        stub_file = builder.build()
        for name, error in builder.failures:
            bus.warning(L.generate.decl.failed, name=name, path=display, error=error)

        existing = self._existing_stub(destination, seed, output)
        try:
            content = self.merger.serialize(stub_file, existing)
        except cst.ParserSyntaxError as e:
            bus.error(L.error.parse.stub, path=display, error=e)
            report.failed.append(display)
            return
        for name, error in self.merger.failures:
            bus.warning(L.generate.decl.failed, name=name, path=display, error=error)

        tm = TransactionManager(destination)
        tm.add_write(output, content)
        if not tm.commit():
            bus.info(L.generate.file.unchanged, path=display)
            report.unchanged.append(display)
            return

        if existing:
            bus.success(L.generate.file.merged, path=display)
            report.merged.append(display)
        else:
            bus.success(L.generate.file.success, path=display)
            report.generated.append(display)

    def run(
        self, source_root: Path, destination: Path, seed: Optional[Path] = None
    ) -> GenerationReport:
        source_root = source_root.resolve()
        destination = destination.resolve()
        self._validate(source_root, destination)

        report = GenerationReport()
        bus.info(
            L.generate.run.start,
            source=source_root.as_posix(),
            destination=destination.as_posix(),
        )

        files, skipped = self.discover(source_root)
        for relative in skipped:
            reason = "stub source" if relative.suffix == ".pyi" else "excluded"
            bus.info(L.generate.file.skipped, path=relative.as_posix(), reason=reason)
            report.skipped.append(relative.as_posix())
        if not files:
            bus.warning(L.generate.run.empty, source=source_root.as_posix())

        modules = self._parse_all(source_root.parent, files, report)
        index = SourceIndex(modules)
        context = StubContext(index, self.config)

        for module in index.modules:
            self._process_module(module, context, destination, seed, report)

        bus.success(
            L.generate.run.complete,
            generated=len(report.generated),
            merged=len(report.merged),
            unchanged=len(report.unchanged),
            skipped=len(report.skipped),
            failed=len(report.failed),
        )
        return report
