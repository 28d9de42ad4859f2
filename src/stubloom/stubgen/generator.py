from typing import List, Sequence

from stubloom.spec import (
    AttributeStub,
    ClassStub,
    FunctionStub,
    Parameter,
    ParameterKind,
    StubDeclaration,
)


class StubGenerator:
    """Renders single stub declarations to source text."""

    def __init__(self, indent_spaces: int = 4):
        self._indent_str = " " * indent_spaces

    def _indent(self, level: int) -> str:
        return self._indent_str * level

    def generate(self, declaration: StubDeclaration, level: int = 0) -> str:
        if isinstance(declaration, ClassStub):
            return self._generate_class(declaration, level)
        if isinstance(declaration, FunctionStub):
            return self._generate_function(declaration, level)
        return self._generate_attribute(declaration, level)

    def _generate_attribute(self, attr: AttributeStub, level: int) -> str:
        indent = self._indent(level)
        annotation = attr.hint.expression if attr.hint else "Any"
        if attr.is_class_var:
            annotation = f"ClassVar[{annotation}]"
        return f"{indent}{attr.name}: {annotation}"

    def render_parameter(self, param: Parameter) -> str:
        arg_str = param.name
        if param.kind == ParameterKind.VAR_POSITIONAL:
            arg_str = f"*{param.name}"
        elif param.kind == ParameterKind.VAR_KEYWORD:
            arg_str = f"**{param.name}"

        if param.hint:
            arg_str += f": {param.hint.expression}"

        if param.default is not None:
            arg_str += f" = {param.default}" if param.hint else f"={param.default}"
        return arg_str

    def generate_args(self, args: Sequence[Parameter]) -> str:
        # `/` and `*` markers are derived from kind transitions.
        parts: List[str] = []

        has_pos_only = any(a.kind == ParameterKind.POSITIONAL_ONLY for a in args)
        pos_only_emitted = False
        kw_only_marker_emitted = False

        for i, arg in enumerate(args):
            if has_pos_only and not pos_only_emitted:
                if arg.kind != ParameterKind.POSITIONAL_ONLY:
                    parts.append("/")
                    pos_only_emitted = True

            if arg.kind == ParameterKind.KEYWORD_ONLY and not kw_only_marker_emitted:
                seen_var_pos = any(
                    a.kind == ParameterKind.VAR_POSITIONAL for a in args[:i]
                )
                if not seen_var_pos:
                    parts.append("*")
                kw_only_marker_emitted = True

            parts.append(self.render_parameter(arg))

        # All parameters were positional-only.
        if has_pos_only and not pos_only_emitted:
            parts.append("/")

        return ", ".join(parts)

    def _generate_function(self, func: FunctionStub, level: int) -> str:
        indent = self._indent(level)
        lines = [f"{indent}@{dec}" for dec in func.decorators]

        prefix = "async " if func.is_async else ""
        args_str = self.generate_args(func.parameters)
        ret_str = f" -> {func.returns.expression}" if func.returns else ""
        lines.append(f"{indent}{prefix}def {func.name}({args_str}){ret_str}: ...")
        return "\n".join(lines)

    def _generate_class(self, cls: ClassStub, level: int) -> str:
        indent = self._indent(level)
        lines = [f"{indent}@{dec}" for dec in cls.decorators]

        bases_str = ""
        if cls.bases:
            bases_str = f"({', '.join(b.expression for b in cls.bases)})"
        lines.append(f"{indent}class {cls.name}{bases_str}:")

        for attr in cls.attributes:
            lines.append(self._generate_attribute(attr, level + 1))

        if cls.attributes and cls.methods:
            lines.append("")

        for i, method in enumerate(cls.methods):
            lines.append(self._generate_function(method, level + 1))
            if i < len(cls.methods) - 1:
                lines.append("")

        if not cls.attributes and not cls.methods:
            lines.append(f"{self._indent(level + 1)}...")

        return "\n".join(lines)
