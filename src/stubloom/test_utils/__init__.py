from .bus import SpyBus
from .helpers import build_index, render_stub
from .workspace import WorkspaceFactory

__all__ = ["SpyBus", "WorkspaceFactory", "build_index", "render_stub"]
