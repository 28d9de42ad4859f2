import ast
import logging
from pathlib import Path
from typing import Any, List, Optional, cast

import griffe

from stubloom.spec import (
    AttributeDecl,
    ClassDecl,
    Declaration,
    FunctionDecl,
    ImportEdge,
    LanguageParserProtocol,
    Parameter,
    ParameterKind,
    SourceModule,
)
from .utils import is_package_file, path_to_module_name, resolve_relative_module

log = logging.getLogger(__name__)

_KIND_MAP = {
    griffe.ParameterKind.positional_only: ParameterKind.POSITIONAL_ONLY,
    griffe.ParameterKind.positional_or_keyword: ParameterKind.POSITIONAL_OR_KEYWORD,
    griffe.ParameterKind.var_positional: ParameterKind.VAR_POSITIONAL,
    griffe.ParameterKind.keyword_only: ParameterKind.KEYWORD_ONLY,
    griffe.ParameterKind.var_keyword: ParameterKind.VAR_KEYWORD,
}


class _ImportVisitor(ast.NodeVisitor):
    """
    Collects module-level imports, including those nested in top-level
    `if`/`try` blocks. Function and class bodies are not entered.
    """

    def __init__(self, module_name: str, is_package: bool):
        self.module_name = module_name
        self.is_package = is_package
        self.edges: List[ImportEdge] = []
        self.lines: List[str] = []

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        return

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        return

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        return

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.edges.append(
                ImportEdge(
                    qualified_name=alias.name,
                    alias=alias.asname or alias.name,
                    is_module=True,
                )
            )
        self.lines.append(ast.unparse(node))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.module == "__future__":
            return

        target = resolve_relative_module(
            self.module_name, self.is_package, node.level, node.module or ""
        )
        written = "." * node.level + (node.module or "")

        if any(alias.name == "*" for alias in node.names):
            edge = ImportEdge(qualified_name=target, alias="*", is_star=True)
            self.edges.append(edge)
            self.lines.append(f"from {written} import *")
            return

        rendered = []
        for alias in node.names:
            local = alias.asname or alias.name
            qualified = f"{target}.{alias.name}" if target else alias.name
            self.edges.append(ImportEdge(qualified_name=qualified, alias=local))
            # Explicit re-export form so type checkers treat the name as public.
            rendered.append(f"{alias.name} as {local}")
        self.lines.append(f"from {written} import {', '.join(rendered)}")


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


class GriffePythonParser(LanguageParserProtocol):
    def parse(
        self, source_code: str, file_path: str = "", module_name: str = ""
    ) -> SourceModule:
        # 1. Parse into AST
        try:
            tree = ast.parse(source_code)
        except SyntaxError as e:
            raise ValueError(f"Syntax error in {file_path}: {e}") from e

        module_name = module_name or path_to_module_name(file_path) or "module"

        # 2. Extract imports via AST
        import_visitor = _ImportVisitor(module_name, is_package_file(file_path))
        import_visitor.visit(tree)

        # 3. Visit with Griffe
        path_obj = Path(file_path) if file_path else None
        griffe_module = griffe.visit(
            module_name.rpartition(".")[2],
            filepath=cast(Any, path_obj),
            code=source_code,
        )

        declarations = self._map_members(griffe_module, module_name)
        docstring = griffe_module.docstring.value if griffe_module.docstring else None

        return SourceModule(
            name=module_name,
            file_path=file_path,
            declarations=tuple(declarations),
            imports=tuple(import_visitor.edges),
            import_lines=tuple(import_visitor.lines),
            docstring=docstring,
            is_stub=file_path.endswith(".pyi"),
        )

    def _map_members(self, gm: griffe.Module, module_name: str) -> List[Declaration]:
        declarations: List[Declaration] = []
        for member in gm.members.values():
            # Aliases are imports; they are handled by the import visitor.
            if member.is_alias:
                continue
            qualified_name = f"{module_name}.{member.name}"
            if member.is_function:
                declarations.append(
                    self._map_function(
                        cast(griffe.Function, member), qualified_name, module_name
                    )
                )
            elif member.is_class:
                declarations.append(
                    self._map_class(
                        cast(griffe.Class, member), qualified_name, module_name
                    )
                )
            elif member.is_attribute:
                declarations.append(
                    self._map_attribute(
                        cast(griffe.Attribute, member), qualified_name, module_name
                    )
                )
        return declarations

    def _map_class(
        self, gc: griffe.Class, qualified_name: str, module_name: str
    ) -> ClassDecl:
        methods: List[FunctionDecl] = []
        class_attributes: List[AttributeDecl] = []
        instance_attributes: List[AttributeDecl] = []

        for member in gc.members.values():
            if member.is_alias:
                continue
            member_qname = f"{qualified_name}.{member.name}"
            if member.is_function:
                methods.append(
                    self._map_function(
                        cast(griffe.Function, member), member_qname, module_name
                    )
                )
            elif member.is_attribute and "property" in member.labels:
                methods.extend(
                    self._map_property(
                        cast(griffe.Attribute, member), member_qname, module_name
                    )
                )
            elif member.is_attribute:
                attribute = self._map_attribute(
                    cast(griffe.Attribute, member), member_qname, module_name
                )
                if attribute.is_instance:
                    instance_attributes.append(attribute)
                else:
                    class_attributes.append(attribute)
            elif member.is_class:
                log.debug(f"Nested class {member_qname} is not stubbed")

        docstring = gc.docstring.value if gc.docstring else None
        return ClassDecl(
            name=gc.name,
            qualified_name=qualified_name,
            module=module_name,
            bases=tuple(str(b) for b in gc.bases),
            decorators=tuple(str(d.value) for d in gc.decorators),
            docstring=docstring,
            class_attributes=tuple(class_attributes),
            instance_attributes=tuple(instance_attributes),
            methods=tuple(methods),
        )

    def _map_attribute(
        self, ga: griffe.Attribute, qualified_name: str, module_name: str
    ) -> AttributeDecl:
        docstring = ga.docstring.value if ga.docstring else None
        return AttributeDecl(
            name=ga.name,
            qualified_name=qualified_name,
            module=module_name,
            annotation=_text(ga.annotation),
            value=_text(ga.value),
            docstring=docstring,
            # Anything assigned in the class body is class-level, even when
            # __init__ reassigns it.
            is_instance="instance-attribute" in ga.labels
            and "class-attribute" not in ga.labels,
        )

    def _map_property(
        self, ga: griffe.Attribute, qualified_name: str, module_name: str
    ) -> List[FunctionDecl]:
        # Griffe turns a property into an Attribute and hangs its
        # setter/deleter off it; the getter signature is not kept.
        getter = FunctionDecl(
            name=ga.name,
            qualified_name=qualified_name,
            module=module_name,
            parameters=(Parameter(name="self"),),
            return_annotation=_text(ga.annotation),
            decorators=("property",),
            docstring=ga.docstring.value if ga.docstring else None,
        )
        decls = [getter]
        for accessor in (ga.setter, ga.deleter):
            if accessor is not None:
                decls.append(
                    self._map_function(accessor, qualified_name, module_name, ga.name)
                )
        return decls

    def _map_function(
        self,
        gf: griffe.Function,
        qualified_name: str,
        module_name: str,
        name: Optional[str] = None,
    ) -> FunctionDecl:
        docstring = gf.docstring.value if gf.docstring else None
        return FunctionDecl(
            name=name or gf.name,
            qualified_name=qualified_name,
            module=module_name,
            parameters=tuple(self._map_parameter(p) for p in gf.parameters),
            return_annotation=_text(gf.returns),
            decorators=tuple(str(d.value) for d in gf.decorators),
            docstring=docstring,
            is_async="async" in gf.labels,
        )

    def _map_parameter(self, param: griffe.Parameter) -> Parameter:
        kind = ParameterKind.POSITIONAL_OR_KEYWORD
        if param.kind:
            kind = _KIND_MAP.get(param.kind, ParameterKind.POSITIONAL_OR_KEYWORD)
        return Parameter(
            name=param.name,
            kind=kind,
            annotation=_text(param.annotation),
            # Griffe reports `()` and `{}` as the defaults of *args and **kwargs.
            default=None if kind.is_variadic else _text(param.default),
        )
