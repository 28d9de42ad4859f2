import re
from typing import List, Optional, Sequence, Set, Tuple, Union

import libcst as cst

from stubloom.spec import ImportEdge, StubFile

ImportNode = Union[cst.Import, cst.ImportFrom]

BASELINE_IMPORTS: Tuple[ImportEdge, ...] = (
    ImportEdge(qualified_name="typing.Any", alias="Any"),
    ImportEdge(qualified_name="typing.ClassVar", alias="ClassVar"),
)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_EMPTY = cst.Module(body=[])


def node_code(node: cst.CSTNode) -> str:
    return _EMPTY.code_for_node(node)


def statement_text(statement: cst.CSTNode) -> str:
    """Code of a statement without its leading blank lines and comments."""
    if isinstance(statement, cst.SimpleStatementLine):
        statement = statement.with_changes(leading_lines=[])
    return node_code(statement).strip()


def import_node(statement: cst.CSTNode) -> Optional[ImportNode]:
    if isinstance(statement, cst.SimpleStatementLine) and len(statement.body) == 1:
        small = statement.body[0]
        if isinstance(small, (cst.Import, cst.ImportFrom)):
            return small
    return None


def _is_future(node: ImportNode) -> bool:
    return (
        isinstance(node, cst.ImportFrom)
        and node.module is not None
        and node_code(node.module) == "__future__"
    )


def _is_docstring(statement: cst.CSTNode) -> bool:
    return (
        isinstance(statement, cst.SimpleStatementLine)
        and len(statement.body) == 1
        and isinstance(statement.body[0], cst.Expr)
        and isinstance(
            statement.body[0].value, (cst.SimpleString, cst.ConcatenatedString)
        )
    )


def insertion_index(body: Sequence[cst.CSTNode]) -> int:
    """First position after a module docstring and `__future__` imports."""
    index = 0
    if body and _is_docstring(body[0]):
        index = 1
    while index < len(body):
        node = import_node(body[index])
        if node is None or not _is_future(node):
            break
        index += 1
    return index


class _UsageCollector(cst.CSTVisitor):
    def __init__(self) -> None:
        self.names: Set[str] = set()

    def visit_Import(self, node: cst.Import) -> Optional[bool]:
        return False

    def visit_ImportFrom(self, node: cst.ImportFrom) -> Optional[bool]:
        return False

    def visit_Name(self, node: cst.Name) -> None:
        self.names.add(node.value)

    def visit_SimpleString(self, node: cst.SimpleString) -> None:
        # Forward references and `__all__` entries.
        value = node.evaluated_value
        if isinstance(value, str):
            self.names.update(_IDENTIFIER.findall(value))


class ImportOptimizer:
    """
    Removes unused and duplicate top-level imports.

    Star imports, `__future__` imports and explicit re-exports
    (`import a as a`, `from m import a as a`) are always kept. Applying the
    optimizer to its own output changes nothing.
    """

    def optimize(self, module: cst.Module) -> cst.Module:
        usage = _UsageCollector()
        module.visit(usage)
        used = usage.names

        seen: Set[Tuple[str, str, str]] = set()
        body: List[cst.CSTNode] = []
        for statement in module.body:
            node = import_node(statement)
            if (
                node is None
                or _is_future(node)
                or isinstance(node.names, cst.ImportStar)
            ):
                body.append(statement)
                continue

            kept = self._filter_aliases(node, used, seen)
            if not kept:
                continue
            if len(kept) != len(node.names):
                kept[-1] = kept[-1].with_changes(comma=cst.MaybeSentinel.DEFAULT)
                new_node: ImportNode = node.with_changes(names=kept)
                if isinstance(new_node, cst.ImportFrom) and len(kept) == 1:
                    new_node = new_node.with_changes(lpar=None, rpar=None)
                statement = statement.with_changes(body=[new_node])
            body.append(statement)

        return module.with_changes(body=body)

    def _filter_aliases(
        self, node: ImportNode, used: Set[str], seen: Set[Tuple[str, str, str]]
    ) -> List[cst.ImportAlias]:
        source = ""
        if isinstance(node, cst.ImportFrom):
            source = "." * len(node.relative) + (
                node_code(node.module) if node.module else ""
            )

        kept: List[cst.ImportAlias] = []
        if isinstance(node.names, cst.ImportStar):
            return kept
        for alias in node.names:
            name = node_code(alias.name)
            asname = node_code(alias.asname.name) if alias.asname else ""
            key = (source, name, asname)
            if key in seen:
                continue
            bound = asname or name
            is_reexport = asname == name
            if not is_reexport and bound.split(".")[0] not in used:
                continue
            seen.add(key)
            kept.append(alias)
        return kept


class ImportPipeline:
    """
    Brings the import block of a merged stub into its final shape:
    source import lines are lifted out, baseline and generated imports are
    added unless already present, unused ones are pruned, and the source
    lines are put back at the very top.
    """

    def __init__(self, optimizer: Optional[ImportOptimizer] = None):
        self.optimizer = optimizer or ImportOptimizer()

    def apply(self, module: cst.Module, stub_file: StubFile) -> cst.Module:
        source_lines = [line.strip() for line in stub_file.source_import_lines]
        source_set = set(source_lines)

        # 1. Lift out previously copied source imports.
        body = [s for s in module.body if statement_text(s) not in source_set]

        # 2. Baseline and generated imports.
        source_aliases = self._source_aliases(stub_file)
        present = {statement_text(s) for s in body if import_node(s) is not None}
        additions: List[cst.BaseStatement] = []
        for edge in BASELINE_IMPORTS + stub_file.imports:
            if edge.alias in source_aliases:
                continue
            text = edge.render()
            if text in present:
                continue
            present.add(text)
            additions.append(cst.parse_statement(text))
        at = insertion_index(body)
        body[at:at] = additions

        # 3. Prune.
        module = self.optimizer.optimize(module.with_changes(body=body))

        # 4. Source imports first.
        body = list(module.body)
        at = insertion_index(body)
        body[at:at] = [cst.parse_statement(line) for line in source_lines]
        return module.with_changes(body=self._separate_imports(body))

    def _source_aliases(self, stub_file: StubFile) -> Set[str]:
        aliases: Set[str] = set()
        for line in stub_file.source_import_lines:
            node = import_node(cst.parse_statement(line))
            if node is None or isinstance(node.names, cst.ImportStar):
                continue
            for alias in node.names:
                if alias.asname:
                    aliases.add(node_code(alias.asname.name))
                else:
                    aliases.add(node_code(alias.name))
        return aliases

    def _separate_imports(self, body: List[cst.CSTNode]) -> List[cst.CSTNode]:
        # One blank line between the leading import block and what follows.
        index = insertion_index(body)
        has_imports = index > 0
        while index < len(body) and import_node(body[index]) is not None:
            index += 1
            has_imports = True
        if not has_imports or index >= len(body):
            return body

        first = body[index]
        leading = getattr(first, "leading_lines", None)
        if leading is not None and not leading:
            body[index] = first.with_changes(
                leading_lines=[cst.EmptyLine(indent=False)]
            )
        return body
