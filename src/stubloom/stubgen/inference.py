import ast
import builtins
import logging
from typing import Optional, Set

from stubloom.common import bus
from stubloom.config import StubloomConfig
from stubloom.index import SourceIndex, choose
from stubloom.lang.python import DocstringSignalExtractor
from stubloom.needle import L
from stubloom.spec import (
    AttributeDecl,
    ClassDecl,
    FunctionDecl,
    SourceModule,
    TypeHint,
)
from .imports import TypeResolver

log = logging.getLogger(__name__)

ANY_HINT = TypeHint(expression="Any")

_LITERAL_TYPES = {
    bool: "bool",
    int: "int",
    float: "float",
    complex: "complex",
    str: "str",
    bytes: "bytes",
}

_DISPLAY_TYPES = {
    ast.List: "list",
    ast.ListComp: "list",
    ast.Dict: "dict",
    ast.DictComp: "dict",
    ast.Set: "set",
    ast.SetComp: "set",
    ast.Tuple: "tuple",
}


def _decorator_head(decorator: str) -> str:
    return decorator.split("(", 1)[0].strip()


class RedirectResolver:
    """
    Follows the "copy docstring from" decorator to the declaration whose
    docstring actually documents a function.
    """

    def __init__(self, index: SourceIndex, config: StubloomConfig):
        self.index = index
        self.config = config

    def _redirect_argument(self, function: FunctionDecl) -> Optional[str]:
        marker = self.config.redirect_decorator
        for decorator in function.decorators:
            head = _decorator_head(decorator)
            if head.rpartition(".")[2] != marker:
                continue
            try:
                node = ast.parse(decorator, mode="eval").body
            except SyntaxError:
                return None
            if not isinstance(node, ast.Call) or len(node.args) != 1 or node.keywords:
                return None
            argument = node.args[0]
            parts = []
            while isinstance(argument, ast.Attribute):
                parts.append(argument.attr)
                argument = argument.value
            if not isinstance(argument, ast.Name):
                return None
            parts.append(argument.id)
            return ".".join(reversed(parts))
        return None

    def redirect_target(self, function: FunctionDecl) -> Optional[FunctionDecl]:
        target = self._redirect_argument(function)
        if target is None:
            return None
        member = target.rpartition(".")[2]
        candidates = self.index.function_candidates(member, contains=target)
        return choose(candidates, self.config.match_policy)

    def effective_docstring(self, function: FunctionDecl) -> Optional[str]:
        visited: Set[str] = {function.qualified_name}
        current = function
        while True:
            target = self.redirect_target(current)
            if target is None or target.qualified_name in visited:
                break
            bus.debug(
                L.debug.log.redirect,
                source=current.qualified_name,
                target=target.qualified_name,
            )
            visited.add(target.qualified_name)
            current = target
        return current.docstring


class GetterTypeInferer:
    def __init__(
        self,
        index: SourceIndex,
        resolver: TypeResolver,
        extractor: DocstringSignalExtractor,
        config: StubloomConfig,
    ):
        self.index = index
        self.resolver = resolver
        self.extractor = extractor
        self.config = config

    def find_getter(self, name: str, owner: ClassDecl) -> Optional[FunctionDecl]:
        getter = owner.find_method(f"{self.config.getter_prefix}{name}")
        if getter is None:
            return None
        if not getter.has_receiver or len(getter.parameters) != 1:
            return None
        return getter

    def infer(self, name: str, owner: ClassDecl) -> Optional[TypeHint]:
        getter = self.find_getter(name, owner)
        if getter is None:
            return None
        context = self.index.get_module(owner.module)
        if context is None:
            return None
        expression = getter.return_annotation or self.extractor.returns_type(
            getter.docstring
        )
        return self.resolver.resolve(expression, context)


class AttributeTypeInferer:
    """
    Types an attribute from, in order: its annotation, the constructor
    parameter it is assigned from, a getter, and finally its value.
    """

    def __init__(
        self,
        index: SourceIndex,
        resolver: TypeResolver,
        getters: GetterTypeInferer,
    ):
        self.index = index
        self.resolver = resolver
        self.getters = getters

    def infer(
        self,
        attribute: AttributeDecl,
        context: SourceModule,
        owner: Optional[ClassDecl] = None,
    ) -> TypeHint:
        hint = self.resolver.resolve(attribute.annotation, context)
        if hint is None and owner is not None:
            hint = self._from_constructor(attribute, context, owner)
            if hint is None:
                hint = self.getters.infer(attribute.name.lstrip("_"), owner)
        if hint is None:
            hint = self.infer_value(attribute.value, context)
        return hint or ANY_HINT

    def _from_constructor(
        self, attribute: AttributeDecl, context: SourceModule, owner: ClassDecl
    ) -> Optional[TypeHint]:
        if not attribute.is_instance or not attribute.value:
            return None
        constructor = owner.constructor()
        if constructor is None:
            return None
        for parameter in constructor.parameters:
            if parameter.name != attribute.value.strip():
                continue
            hint = self.resolver.resolve(parameter.annotation, context)
            return hint or self.getters.infer(parameter.name, owner)
        return None

    def infer_value(
        self, value: Optional[str], context: SourceModule
    ) -> Optional[TypeHint]:
        if not value:
            return None
        try:
            node = ast.parse(value, mode="eval").body
        except SyntaxError:
            return None

        if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
            node = node.operand
        if isinstance(node, ast.Constant):
            name = _LITERAL_TYPES.get(type(node.value))
            return TypeHint(expression=name) if name else None
        for display, name in _DISPLAY_TYPES.items():
            if isinstance(node, display):
                return TypeHint(expression=name)
        if isinstance(node, ast.JoinedStr):
            return TypeHint(expression="str")
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
            return self._from_constructor_call(node.func.id, context)
        return None

    def _from_constructor_call(
        self, name: str, context: SourceModule
    ) -> Optional[TypeHint]:
        declared = context.find(name)
        if isinstance(declared, ClassDecl):
            return self.resolver.resolve(name, context)
        if declared is not None:
            return None

        edge = context.alias_table().get(name)
        if edge is not None:
            if self.index.get_class(edge.qualified_name) is not None:
                return self.resolver.resolve(name, context)
            return None

        if isinstance(getattr(builtins, name, None), type):
            return TypeHint(expression=name)
        return None
