import sys
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

if sys.version_info < (3, 11):
    import tomli as tomllib
else:
    import tomllib


class MatchPolicy(str, Enum):
    FIRST = "first"  # Take the first candidate in index order
    UNIQUE = "unique"  # Take the candidate only if it is the only one


DEFAULT_TYPING_NAMES: Tuple[str, ...] = (
    "Annotated",
    "Any",
    "Callable",
    "ClassVar",
    "Final",
    "ForwardRef",
    "Generic",
    "Literal",
    "Optional",
    "Protocol",
    "tuple",
    "Type",
    "TypeVar",
    "Union",
    "AbstractSet",
    "ByteString",
    "Container",
    "ContextManager",
    "Hashable",
    "ItemsView",
    "Iterable",
    "Iterator",
    "KeysView",
    "Mapping",
    "MappingView",
    "MutableMapping",
    "MutableSequence",
    "MutableSet",
    "Sequence",
    "Sized",
    "ValuesView",
    "Awaitable",
    "AsyncIterator",
    "AsyncIterable",
    "Coroutine",
    "Collection",
    "AsyncGenerator",
    "AsyncContextManager",
    "Reversible",
    "SupportsAbs",
    "SupportsBytes",
    "SupportsComplex",
    "SupportsFloat",
    "SupportsIndex",
    "SupportsInt",
    "SupportsRound",
    "ChainMap",
    "Counter",
    "Deque",
    "Dict",
    "DefaultDict",
    "List",
    "OrderedDict",
    "Set",
    "FrozenSet",
    "NamedTuple",
    "TypedDict",
    "Generator",
    "AnyStr",
)


@dataclass(frozen=True)
class StubloomConfig:
    """
    Static allow/block lists for one generation run.

    Loaded once and passed down explicitly; nothing reads module-level state.
    """

    root_package: str = ""
    excluded_paths: Tuple[str, ...] = ("sphinxext", "testing", "tests")
    excluded_names: Tuple[str, ...] = ("_copy_docstring_and_deprecators",)
    typing_names: Tuple[str, ...] = DEFAULT_TYPING_NAMES
    # Vocabulary names that collide with builtins are imported under another name.
    typing_aliases: Mapping[str, str] = field(
        default_factory=lambda: {"tuple": "Tuple"}
    )
    significant_decorators: Tuple[str, ...] = ("_api",)
    passthrough_decorators: Tuple[str, ...] = ("writer",)
    excluded_attributes: Tuple[str, ...] = (
        "_log",
        "__author__",
        "__credits__",
        "__license__",
        "__doc__",
    )
    redirect_decorator: str = "_copy_docstring_and_deprecators"
    hidden_params_section: str = "Other Parameters"
    hidden_params_field: str = "kwargs"
    getter_prefix: str = "get_"
    match_policy: MatchPolicy = MatchPolicy.FIRST
    stub_suffix: str = ".pyi"

    def with_overrides(self, **overrides: Any) -> "StubloomConfig":
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(overrides)
        return StubloomConfig(**data)


def _find_pyproject_toml(search_path: Path) -> Path:
    current_dir = search_path.resolve()
    if current_dir.is_file():
        return current_dir
    for candidate in [current_dir] + list(current_dir.parents):
        pyproject_path = candidate / "pyproject.toml"
        if pyproject_path.is_file():
            return pyproject_path
    raise FileNotFoundError("Could not find pyproject.toml in any parent directory.")


def config_from_dict(data: Dict[str, Any]) -> StubloomConfig:
    known = {f.name for f in fields(StubloomConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown [tool.stubloom] keys: {', '.join(sorted(unknown))}")

    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "match_policy":
            kwargs[key] = MatchPolicy(value)
        elif key == "typing_aliases":
            kwargs[key] = dict(value)
        elif isinstance(value, list):
            kwargs[key] = tuple(value)
        else:
            kwargs[key] = value
    return StubloomConfig(**kwargs)


def load_config_from_path(
    search_path: Path,
    root_package: Optional[str] = None,
    default_root_package: Optional[str] = None,
) -> StubloomConfig:
    """
    An explicit `root_package` replaces the file's value; the default only
    fills it in when the file sets none.
    """
    try:
        config_path = _find_pyproject_toml(search_path)
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        stubloom_data: Dict[str, Any] = data.get("tool", {}).get("stubloom", {})
    except FileNotFoundError:
        stubloom_data = {}

    config = config_from_dict(stubloom_data)
    if root_package:
        config = config.with_overrides(root_package=root_package)
    elif default_root_package and not config.root_package:
        config = config.with_overrides(root_package=default_root_package)
    return config
