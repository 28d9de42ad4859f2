from .index import SourceIndex, choose

__all__ = ["SourceIndex", "choose"]
