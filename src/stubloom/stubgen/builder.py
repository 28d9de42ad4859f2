import logging
from typing import Any, Callable, List, Optional, Tuple

from stubloom.config import StubloomConfig
from stubloom.index import SourceIndex
from stubloom.lang.python import DocstringSignalExtractor
from stubloom.spec import (
    AttributeDecl,
    AttributeStub,
    ClassDecl,
    ClassStub,
    FunctionDecl,
    FunctionStub,
    ImportEdge,
    SourceModule,
    StubDeclaration,
    StubFile,
    TypeHint,
)
from .imports import ImportCollector, TypeResolver
from .inference import (
    ANY_HINT,
    AttributeTypeInferer,
    GetterTypeInferer,
    RedirectResolver,
)
from .parameters import ParameterSynthesizer

log = logging.getLogger(__name__)

NONE_HINT = TypeHint(expression="None")
_BUILTIN_DECORATORS = ("staticmethod", "classmethod", "property")
_ACCESSOR_SUFFIXES = (".setter", ".getter", ".deleter")


class StubContext:
    """The collaborators shared by every module of one run."""

    def __init__(self, index: SourceIndex, config: StubloomConfig):
        self.index = index
        self.config = config
        self.extractor = DocstringSignalExtractor()
        self.resolver = TypeResolver(index, config)
        self.redirects = RedirectResolver(index, config)
        self.getters = GetterTypeInferer(index, self.resolver, self.extractor, config)
        self.attributes = AttributeTypeInferer(index, self.resolver, self.getters)
        self.parameters = ParameterSynthesizer(
            index,
            self.resolver,
            self.redirects,
            self.getters,
            self.extractor,
            config,
        )


class StubFileBuilder:
    """
    Builds the StubFile of one source module.

    Module attributes are emitted first, then classes, then functions.
    A declaration or class member that fails to build is recorded in
    `failures` and left out; the rest of the file is unaffected.
    """

    def __init__(self, module: SourceModule, context: StubContext):
        self.module = module
        self.ctx = context
        self.config = context.config
        self.imports = ImportCollector(module)
        self.failures: List[Tuple[str, str]] = []

    def build(self) -> StubFile:
        declarations: List[StubDeclaration] = []

        for attribute in self.module.attributes:
            if self._is_excluded_attribute(attribute):
                continue
            self._guarded(
                attribute.name, declarations, lambda: self._attribute(attribute)
            )

        for cls in self.module.classes:
            if self._is_excluded(cls.name, cls.qualified_name):
                continue
            self._guarded(cls.name, declarations, lambda: self._class(cls))

        for function in self.module.functions:
            if self._is_excluded(function.name, function.qualified_name):
                continue
            self._guarded(
                function.name, declarations, lambda: self._function(function)
            )

        return StubFile(
            module=self.module.name,
            declarations=tuple(declarations),
            imports=self.imports.edges,
            source_import_lines=self.module.import_lines,
        )

    def _guarded(self, name: str, sink: List[Any], build: Callable[[], Any]) -> None:
        # Imports are kept only for declarations that built successfully.
        snapshot = self.imports.copy()
        try:
            sink.append(build())
        except Exception as e:
            self.imports = snapshot
            self.failures.append((name, str(e)))
            log.debug(f"Skipping {self.module.name}.{name}: {e}")

    def _is_excluded(self, name: str, qualified_name: str) -> bool:
        excluded = self.config.excluded_names
        return name in excluded or qualified_name in excluded

    def _is_excluded_attribute(self, attribute: AttributeDecl) -> bool:
        if attribute.name in self.config.excluded_attributes:
            return True
        return self._is_excluded(attribute.name, attribute.qualified_name)

    def _hint(self, hint: Optional[TypeHint]) -> Optional[TypeHint]:
        self.imports.add_hint(hint)
        return hint

    # --- Declarations ---

    def _attribute(
        self, attribute: AttributeDecl, owner: Optional[ClassDecl] = None
    ) -> AttributeStub:
        hint = self.ctx.attributes.infer(attribute, self.module, owner)
        return AttributeStub(
            name=attribute.name,
            hint=self._hint(hint),
            is_class_var=owner is not None and not attribute.is_instance,
        )

    def _class(self, cls: ClassDecl) -> ClassStub:
        bases: List[TypeHint] = []
        for base in cls.bases:
            hint = self.ctx.resolver.resolve(base, self.module)
            if hint is None:
                log.debug(f"Dropping unresolvable base {base} of {cls.qualified_name}")
                continue
            self._hint(hint)
            bases.append(hint)

        method_names = {m.name for m in cls.methods}
        attributes: List[AttributeStub] = []
        for attribute in cls.class_attributes + cls.instance_attributes:
            if attribute.name in method_names or self._is_excluded_attribute(attribute):
                continue
            self._guarded(
                f"{cls.name}.{attribute.name}",
                attributes,
                lambda: self._attribute(attribute, owner=cls),
            )

        methods: List[FunctionStub] = []
        for method in cls.methods:
            if self._is_excluded(method.name, method.qualified_name):
                continue
            self._guarded(
                f"{cls.name}.{method.name}",
                methods,
                lambda: self._function(method, owner=cls),
            )

        return ClassStub(
            name=cls.name,
            bases=tuple(bases),
            decorators=self._decorators(cls.decorators),
            attributes=tuple(attributes),
            methods=tuple(methods),
        )

    def _function(
        self, function: FunctionDecl, owner: Optional[ClassDecl] = None
    ) -> FunctionStub:
        parameters = self.ctx.parameters.synthesize(function, owner)
        for parameter in parameters:
            self._hint(parameter.hint)

        return FunctionStub(
            name=function.name,
            parameters=tuple(parameters),
            returns=self._hint(self._returns(function, owner)),
            decorators=self._decorators(function.decorators),
            is_async=function.is_async,
        )

    def _returns(self, function: FunctionDecl, owner: Optional[ClassDecl]) -> TypeHint:
        if owner is not None and function.name == "__init__":
            return NONE_HINT
        hint = self.ctx.resolver.resolve(function.return_annotation, self.module)
        if hint is None:
            docstring = self.ctx.redirects.effective_docstring(function)
            hint = self.ctx.resolver.resolve(
                self.ctx.extractor.returns_type(docstring), self.module
            )
        return hint or ANY_HINT

    # --- Decorators ---

    def keep_decorator(self, decorator: str) -> bool:
        head = decorator.split("(", 1)[0].strip()
        if head in _BUILTIN_DECORATORS or head.endswith(_ACCESSOR_SUFFIXES):
            return True
        components = head.split(".")
        if any(part in self.config.passthrough_decorators for part in components):
            return False
        return components[0] in self.config.significant_decorators

    def _decorators(self, decorators: Tuple[str, ...]) -> Tuple[str, ...]:
        kept = tuple(d for d in decorators if self.keep_decorator(d))
        for decorator in kept:
            head = decorator.split("(", 1)[0].strip()
            if head in _BUILTIN_DECORATORS or head.endswith(_ACCESSOR_SUFFIXES):
                continue
            self._import_decorator_head(head.split(".")[0])
        return kept

    def _import_decorator_head(self, name: str) -> None:
        # Bound by a copied source import or declared locally.
        if name in self.module.alias_table() or self.module.find(name) is not None:
            return
        root = self.config.root_package
        if root:
            edge = ImportEdge(qualified_name=f"{root}.{name}", alias=name)
            self.imports.add_edge(edge)
