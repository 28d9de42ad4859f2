import logging
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from stubloom.config import MatchPolicy
from stubloom.spec import (
    ClassDecl,
    FunctionDecl,
    SourceIndexProtocol,
    SourceModule,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


def choose(candidates: Sequence[T], policy: MatchPolicy) -> Optional[T]:
    """Applies a match policy to an ordered candidate list."""
    if not candidates:
        return None
    if policy == MatchPolicy.UNIQUE and len(candidates) > 1:
        return None
    return candidates[0]


class SourceIndex(SourceIndexProtocol):
    """
    Name lookups over every parsed module of a run.

    Candidate order is deterministic: modules sorted by file path, then
    declarations in source order. Methods are indexed by their short name,
    so `function_candidates("plot")` returns both module-level `plot`
    functions and `Axes.plot`.
    """

    def __init__(self, modules: Iterable[SourceModule] = ()):
        self._modules: Dict[str, SourceModule] = {}
        self._classes_by_name: Dict[str, List[ClassDecl]] = {}
        self._classes_by_qname: Dict[str, ClassDecl] = {}
        self._functions_by_name: Dict[str, List[FunctionDecl]] = {}
        for module in sorted(modules, key=lambda m: m.file_path):
            self.add_module(module)

    def add_module(self, module: SourceModule) -> None:
        if module.name in self._modules:
            log.warning(f"Module {module.name} indexed twice; keeping the first")
            return
        self._modules[module.name] = module

        for function in module.functions:
            self._functions_by_name.setdefault(function.name, []).append(function)
        for cls in module.classes:
            self._classes_by_name.setdefault(cls.name, []).append(cls)
            self._classes_by_qname.setdefault(cls.qualified_name, cls)
            for method in cls.methods:
                self._functions_by_name.setdefault(method.name, []).append(method)

    @property
    def modules(self) -> List[SourceModule]:
        return list(self._modules.values())

    def get_module(self, name: str) -> Optional[SourceModule]:
        return self._modules.get(name)

    def get_class(self, qualified_name: str) -> Optional[ClassDecl]:
        return self._classes_by_qname.get(qualified_name)

    def class_candidates(self, name: str, prefix: str = "") -> List[ClassDecl]:
        candidates = self._classes_by_name.get(name, [])
        if prefix:
            candidates = [
                c
                for c in candidates
                if c.qualified_name == prefix
                or c.qualified_name.startswith(prefix + ".")
            ]
        return list(candidates)

    def function_candidates(self, name: str, contains: str = "") -> List[FunctionDecl]:
        candidates = self._functions_by_name.get(name, [])
        if contains:
            candidates = [f for f in candidates if contains in f.qualified_name]
        return list(candidates)
