from .docstring import DocstringSignalExtractor
from .parser import GriffePythonParser
from .utils import path_to_module_name

__all__ = ["DocstringSignalExtractor", "GriffePythonParser", "path_to_module_name"]
