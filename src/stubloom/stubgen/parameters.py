import ast
import logging
from typing import List, Optional, Set

from stubloom.common import bus
from stubloom.config import StubloomConfig
from stubloom.index import SourceIndex, choose
from stubloom.lang.python import DocstringSignalExtractor
from stubloom.needle import L
from stubloom.spec import ClassDecl, FunctionDecl, Parameter, ParameterKind
from .imports import TypeResolver
from .inference import GetterTypeInferer, RedirectResolver

log = logging.getLogger(__name__)

CONSTRUCTOR_NAMES = ("__init__", "__new__")
_HIDDEN_EXCLUDED = ("self", "args", "kwargs")


def stub_default(default: Optional[str]) -> Optional[str]:
    """Keeps simple literal defaults verbatim; anything else becomes `...`."""
    if default is None:
        return None
    try:
        node = ast.parse(default, mode="eval").body
    except SyntaxError:
        return "..."
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        node = node.operand
    if isinstance(node, ast.Constant):
        if isinstance(node.value, str) and len(node.value) > 50:
            return "..."
        return default
    return "..."


class ParameterSynthesizer:
    """
    Builds the parameter list of a stub function: the real signature plus
    the parameters that a numpy docstring says are forwarded through
    `**kwargs` to some class's constructor.
    """

    def __init__(
        self,
        index: SourceIndex,
        resolver: TypeResolver,
        redirects: RedirectResolver,
        getters: GetterTypeInferer,
        extractor: DocstringSignalExtractor,
        config: StubloomConfig,
    ):
        self.index = index
        self.resolver = resolver
        self.redirects = redirects
        self.getters = getters
        self.extractor = extractor
        self.config = config

    def synthesize(
        self, function: FunctionDecl, owner: Optional[ClassDecl] = None
    ) -> List[Parameter]:
        real = self._real_parameters(function, owner)

        var_keyword = [p for p in real if p.kind == ParameterKind.VAR_KEYWORD]
        positional_section = [p for p in real if p.kind != ParameterKind.VAR_KEYWORD]

        taken = {p.name for p in real}
        hidden_kind = ParameterKind.POSITIONAL_OR_KEYWORD
        if any(
            p.kind in (ParameterKind.VAR_POSITIONAL, ParameterKind.KEYWORD_ONLY)
            for p in real
        ):
            hidden_kind = ParameterKind.KEYWORD_ONLY
        hidden = [
            Parameter(
                name=p.name,
                kind=hidden_kind,
                hint=p.hint,
                default=p.default,
                synthetic=True,
            )
            for p in self.hidden_parameters(function)
            if p.name not in taken
        ]

        return positional_section + hidden + var_keyword

    def _real_parameters(
        self, function: FunctionDecl, owner: Optional[ClassDecl]
    ) -> List[Parameter]:
        context = self.index.get_module(function.module)
        is_constructor = function.name in CONSTRUCTOR_NAMES

        parameters: List[Parameter] = []
        for position, param in enumerate(function.parameters):
            # The receiver is emitted as a plain name.
            if position == 0 and owner is not None and function.has_receiver:
                parameters.append(Parameter(name=param.name, kind=param.kind))
                continue

            hint = self.resolver.resolve(param.annotation, context) if context else None
            if hint is None and is_constructor and owner is not None:
                if not param.kind.is_variadic:
                    hint = self.getters.infer(param.name, owner)

            parameters.append(
                Parameter(
                    name=param.name,
                    kind=param.kind,
                    annotation=param.annotation,
                    hint=hint,
                    default=(
                        None if param.kind.is_variadic else stub_default(param.default)
                    ),
                )
            )
        return parameters

    def hidden_parameters(self, function: FunctionDecl) -> List[Parameter]:
        docstring = self.redirects.effective_docstring(function)
        class_name = self.extractor.referenced_type_name(
            docstring,
            self.config.hidden_params_section,
            self.config.hidden_params_field,
        )
        if not class_name:
            return []

        source_class = self.resolve_class(class_name)
        if source_class is None:
            log.debug(f"Hidden parameter class {class_name} not found")
            return []
        constructor = source_class.constructor()
        if constructor is None:
            return []

        context = self.index.get_module(source_class.module)
        seen: Set[str] = set()
        hidden: List[Parameter] = []
        for param in constructor.parameters:
            if param.name in _HIDDEN_EXCLUDED or param.kind.is_variadic:
                continue
            if param.name in seen:
                continue
            seen.add(param.name)
            hint = self.getters.infer(param.name, source_class)
            if hint is None and context is not None:
                hint = self.resolver.resolve(param.annotation, context)
            hidden.append(
                Parameter(name=param.name, hint=hint, default="...", synthetic=True)
            )

        bus.debug(
            L.debug.log.hidden_params,
            count=len(hidden),
            name=function.qualified_name,
            cls=source_class.qualified_name,
        )
        return hidden

    def resolve_class(self, name: str) -> Optional[ClassDecl]:
        root = self.config.root_package
        if root and (name == root or name.startswith(root + ".")):
            return self.index.get_class(name)
        candidates = self.index.class_candidates(name, prefix=root)
        return choose(candidates, self.config.match_policy)
