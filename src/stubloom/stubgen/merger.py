import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union, cast

import libcst as cst

from stubloom.spec import (
    AttributeStub,
    ClassStub,
    FunctionStub,
    Parameter,
    ParameterKind,
    StubDeclaration,
    StubFile,
    StubSerializerProtocol,
)
from .generator import StubGenerator
from .optimizer import ImportPipeline, node_code

log = logging.getLogger(__name__)

_ACCESSORS = ("setter", "getter", "deleter")


def _accessor_of_decorators(decorators: Sequence[str]) -> str:
    for decorator in decorators:
        head, _, suffix = decorator.rpartition(".")
        if head and suffix in _ACCESSORS:
            return suffix
    return ""


def _def_key(node: cst.FunctionDef) -> Tuple[str, str]:
    decorators = [node_code(d.decorator) for d in node.decorators]
    return node.name.value, _accessor_of_decorators(decorators)


def _stub_key(stub: FunctionStub) -> Tuple[str, str]:
    return stub.name, _accessor_of_decorators(stub.decorators)


def _bound_names(statement: cst.CSTNode) -> List[str]:
    if isinstance(statement, (cst.ClassDef, cst.FunctionDef)):
        return [statement.name.value]
    names: List[str] = []
    if isinstance(statement, cst.SimpleStatementLine):
        for small in statement.body:
            if isinstance(small, cst.AnnAssign) and isinstance(small.target, cst.Name):
                names.append(small.target.value)
            elif isinstance(small, cst.Assign):
                for target in small.targets:
                    if isinstance(target.target, cst.Name):
                        names.append(target.target.value)
    return names


def _is_placeholder(statement: cst.CSTNode) -> bool:
    if not isinstance(statement, cst.SimpleStatementLine) or len(statement.body) != 1:
        return False
    small = statement.body[0]
    if isinstance(small, cst.Pass):
        return True
    return isinstance(small, cst.Expr) and isinstance(small.value, cst.Ellipsis)


class StubMerger(StubSerializerProtocol):
    """
    Serializes a StubFile into an existing stub without losing anything.

    Declarations already present in the stub are kept as written; only
    missing classes, members, functions and parameters are added. Nothing
    is deleted or reordered. Failures to render a single declaration are
    collected in `failures` and that declaration is left out.
    """

    def __init__(
        self,
        generator: Optional[StubGenerator] = None,
        pipeline: Optional[ImportPipeline] = None,
    ):
        self.generator = generator or StubGenerator()
        self.pipeline = pipeline or ImportPipeline()
        self.failures: List[Tuple[str, str]] = []

    def serialize(self, stub_file: StubFile, existing_code: str = "") -> str:
        self.failures = []
        # Raises cst.ParserSyntaxError for an unreadable existing stub.
        module = cst.parse_module(existing_code)

        body = self._merge_body(list(module.body), stub_file.declarations)
        module = module.with_changes(body=body)
        module = self.pipeline.apply(module, stub_file)
        if module.body:
            module = module.with_changes(has_trailing_newline=True)
        return module.code

    # --- Bodies ---

    def _merge_body(
        self, body: List[cst.CSTNode], declarations: Sequence[StubDeclaration]
    ) -> List[cst.CSTNode]:
        for declaration in declarations:
            if isinstance(declaration, FunctionStub):
                self._merge_function_into(body, declaration)
                continue

            index = self._find_binding(body, declaration.name)
            if index is None:
                self._append(body, declaration)
            elif isinstance(declaration, ClassStub) and isinstance(
                body[index], cst.ClassDef
            ):
                body[index] = self._merge_class(body[index], declaration)
        return body

    def _find_binding(self, body: Sequence[cst.CSTNode], name: str) -> Optional[int]:
        for index, statement in enumerate(body):
            if name in _bound_names(statement):
                return index
        return None

    def _merge_function_into(self, body: List[cst.CSTNode], stub: FunctionStub) -> None:
        key = _stub_key(stub)
        matches = [
            i
            for i, s in enumerate(body)
            if isinstance(s, cst.FunctionDef) and _def_key(s) == key
        ]
        if len(matches) == 1:
            try:
                body[matches[0]] = self._merge_function(body[matches[0]], stub)
            except (cst.ParserSyntaxError, cst.CSTValidationError) as e:
                self._record_failure(stub.name, e)
            return
        if matches:
            # Overloads: leave every variant as written.
            return
        # Any other binding of the name is kept as written.
        if not key[1] and self._find_binding(body, stub.name) is not None:
            return
        self._append(body, stub)

    def _append(self, body: List[cst.CSTNode], declaration: StubDeclaration) -> None:
        try:
            statements = list(self._render(declaration))
        except (cst.ParserSyntaxError, cst.CSTValidationError) as e:
            if not isinstance(declaration, ClassStub):
                self._record_failure(declaration.name, e)
                return
            # Keep the class and drop only the members that do not render.
            shell = self._render_shell(declaration)
            if shell is None:
                return
            statements = [self._merge_class(shell, declaration)]

        needs_gap = bool(body) and not isinstance(declaration, AttributeStub)
        if isinstance(declaration, AttributeStub) and body:
            # An attribute following a class or function is visually separated.
            needs_gap = not isinstance(body[-1], cst.SimpleStatementLine)
        if needs_gap and statements:
            statements[0] = statements[0].with_changes(
                leading_lines=[cst.EmptyLine(indent=False)]
            )
        body.extend(statements)

    def _render_shell(self, stub: ClassStub) -> Optional[cst.ClassDef]:
        shell = ClassStub(name=stub.name, bases=stub.bases, decorators=stub.decorators)
        try:
            node = self._render(shell)[0]
        except (cst.ParserSyntaxError, cst.CSTValidationError) as e:
            self._record_failure(stub.name, e)
            return None
        return cast(cst.ClassDef, node)

    def _record_failure(self, name: str, error: Exception) -> None:
        log.debug(f"Could not render {name}: {error}")
        self.failures.append((name, str(error)))

    def _render(self, declaration: StubDeclaration) -> Sequence[cst.BaseStatement]:
        return cst.parse_module(self.generator.generate(declaration) + "\n").body

    # --- Classes ---

    def _merge_class(self, node: cst.ClassDef, stub: ClassStub) -> cst.ClassDef:
        if isinstance(node.body, cst.IndentedBlock):
            members = list(node.body.body)
            block = node.body
        else:
            members = [cst.SimpleStatementLine(body=list(node.body.body))]
            block = cst.IndentedBlock(body=[])

        placeholder = len(members) == 1 and _is_placeholder(members[0])
        working: List[cst.CSTNode] = [] if placeholder else list(members)
        baseline = list(working)

        for attribute in stub.attributes:
            if self._find_binding(working, attribute.name) is None:
                self._append(working, attribute)
        for method in stub.methods:
            self._merge_function_into(working, method)

        unchanged = len(working) == len(baseline) and all(
            a is b for a, b in zip(working, baseline)
        )
        if not working or unchanged:
            return node
        return node.with_changes(body=block.with_changes(body=working))

    # --- Functions ---

    def _merge_function(
        self, node: cst.FunctionDef, stub: FunctionStub
    ) -> cst.FunctionDef:
        params = node.params
        existing = self._param_names(params)
        missing = [p for p in stub.parameters if p.name not in existing]
        if not missing:
            return node

        positional = list(params.posonly_params) + list(params.params)
        has_default = any(p.default is not None for p in positional)

        new_params = list(params.params)
        kwonly = list(params.kwonly_params)
        star_arg = params.star_arg
        star_kwarg = params.star_kwarg

        for param in missing:
            if param.kind == ParameterKind.VAR_POSITIONAL:
                if not isinstance(star_arg, cst.Param):
                    star_arg = self._param(param)
            elif param.kind == ParameterKind.VAR_KEYWORD:
                if star_kwarg is None:
                    star_kwarg = self._param(param)
            elif param.kind == ParameterKind.KEYWORD_ONLY:
                # A bare `*` is rendered automatically before keyword-only params.
                kwonly.append(self._param(param))
            else:
                if has_default and param.default is None:
                    param = Parameter(
                        name=param.name,
                        kind=param.kind,
                        hint=param.hint,
                        default="...",
                        synthetic=param.synthetic,
                    )
                has_default = has_default or param.default is not None
                new_params.append(self._param(param))

        return node.with_changes(
            params=params.with_changes(
                params=new_params,
                kwonly_params=kwonly,
                star_arg=star_arg,
                star_kwarg=star_kwarg,
            )
        )

    @staticmethod
    def _param_names(params: cst.Parameters) -> Dict[str, cst.Param]:
        names: Dict[str, cst.Param] = {}
        declared = (
            list(params.posonly_params)
            + list(params.params)
            + list(params.kwonly_params)
        )
        for param in declared:
            names[param.name.value] = param
        if isinstance(params.star_arg, cst.Param):
            names[params.star_arg.name.value] = params.star_arg
        if params.star_kwarg is not None:
            names[params.star_kwarg.name.value] = params.star_kwarg
        return names

    def _param(self, param: Parameter) -> cst.Param:
        return cst.Param(
            name=cst.Name(param.name),
            annotation=(
                cst.Annotation(cst.parse_expression(param.hint.expression))
                if param.hint
                else None
            ),
            default=cst.parse_expression(param.default) if param.default else None,
            equal=(
                cst.MaybeSentinel.DEFAULT
                if param.hint or not param.default
                else cst.AssignEqual(
                    whitespace_before=cst.SimpleWhitespace(""),
                    whitespace_after=cst.SimpleWhitespace(""),
                )
            ),
        )
