from pathlib import PurePosixPath


def path_to_module_name(rel_path_str: str) -> str:
    """'pkg/sub/mod.py' -> 'pkg.sub.mod'; `__init__` files map to the package."""
    path = PurePosixPath(rel_path_str)
    parts = list(path.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def is_package_file(rel_path_str: str) -> bool:
    return PurePosixPath(rel_path_str).stem == "__init__"


def resolve_relative_module(
    current_module: str, is_package: bool, level: int, module: str = ""
) -> str:
    """Turns the target of `from ..x import y` into an absolute dotted name."""
    if level == 0:
        return module
    parts = current_module.split(".") if current_module else []
    # A package's own name is its first anchor; a plain module anchors on its parent.
    drop = level - 1 if is_package else level
    base = parts[: len(parts) - drop] if drop else parts
    if module:
        base = base + [module]
    return ".".join(base)
