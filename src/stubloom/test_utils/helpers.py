from textwrap import dedent
from typing import Dict

from stubloom.config import StubloomConfig
from stubloom.index import SourceIndex
from stubloom.lang.python import GriffePythonParser
from stubloom.stubgen import StubContext, StubFileBuilder, StubMerger


def build_index(sources: Dict[str, str]) -> SourceIndex:
    """Parses `{relative path: code}` into an index, e.g. {"pkg/mod.py": "..."}."""
    parser = GriffePythonParser()
    modules = [
        parser.parse(dedent(code), file_path=path) for path, code in sources.items()
    ]
    return SourceIndex(modules)


def render_stub(
    sources: Dict[str, str],
    module_name: str,
    config: StubloomConfig = StubloomConfig(),
    existing: str = "",
) -> str:
    """Builds and serializes the stub of one module of an in-memory tree."""
    index = build_index(sources)
    module = index.get_module(module_name)
    if module is None:
        raise KeyError(module_name)
    stub_file = StubFileBuilder(module, StubContext(index, config)).build()
    return StubMerger().serialize(stub_file, dedent(existing))
