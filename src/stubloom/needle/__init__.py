from .pointer import L, SemanticPointer
from .runtime import needle, Needle, find_project_root
from .loader import Loader
from .interfaces import FileHandler

__all__ = [
    "L",
    "SemanticPointer",
    "needle",
    "Needle",
    "find_project_root",
    "Loader",
    "FileHandler",
]
