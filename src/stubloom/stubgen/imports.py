import ast
import builtins
import logging
from typing import Dict, List, Optional, Set, Tuple

from stubloom.config import StubloomConfig
from stubloom.index import SourceIndex, choose
from stubloom.spec import ImportEdge, SourceModule, TypeHint

log = logging.getLogger(__name__)


def _dotted_name(node: ast.expr) -> Optional[str]:
    parts: List[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def _union_members(node: ast.expr) -> Optional[List[ast.expr]]:
    """Splits `A | B`, `Union[A, B]` and `Optional[A]` into their members."""
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return (_union_members(node.left) or [node.left]) + (
            _union_members(node.right) or [node.right]
        )
    if isinstance(node, ast.Subscript):
        head = _dotted_name(node.value)
        if head is None:
            return None
        short = head.rpartition(".")[2]
        elements = (
            list(node.slice.elts) if isinstance(node.slice, ast.Tuple) else [node.slice]
        )
        if short == "Union":
            members: List[ast.expr] = []
            for element in elements:
                members.extend(_union_members(element) or [element])
            return members
        if short == "Optional" and len(elements) == 1:
            inner = elements[0]
            return (_union_members(inner) or [inner]) + [ast.Constant(value=None)]
    return None


class TypeResolver:
    """
    Turns annotation text into a TypeHint whose references are import edges.

    Names are resolved relative to the module the annotation was written in:
    builtins need nothing, the typing vocabulary comes from `typing`, names
    bound by that module's imports reuse the same binding, names declared in
    it point back at it, anything else is searched in the index.
    """

    def __init__(self, index: SourceIndex, config: StubloomConfig):
        self.index = index
        self.config = config
        self._typing_names = set(config.typing_names)

    def resolve(
        self, expression: Optional[str], context: SourceModule
    ) -> Optional[TypeHint]:
        if not expression:
            return None
        try:
            tree = ast.parse(expression.strip(), mode="eval").body
        except SyntaxError:
            log.debug(f"Unparsable annotation {expression!r} in {context.name}")
            return None

        members = _union_members(tree)
        if members is None:
            return self._resolve_node(tree, context)

        hints: List[TypeHint] = []
        for member in members:
            hint = self._resolve_node(member, context)
            if hint is None:
                return None
            hints.append(hint)
        return TypeHint.union(*hints)

    def _resolve_node(
        self, node: ast.expr, context: SourceModule
    ) -> Optional[TypeHint]:
        rewriter = _Rewriter(self, context)
        rewritten = rewriter.visit(node)
        if not rewriter.ok:
            return None
        return TypeHint(
            expression=ast.unparse(rewritten), references=frozenset(rewriter.edges)
        )

    def edge_for(
        self, dotted: str, context: SourceModule
    ) -> Tuple[bool, Optional[ImportEdge]]:
        """
        Returns (resolved, edge). `edge` is None for names that need no import.
        """
        head = dotted.split(".", 1)[0]

        # Aliased vocabulary names (`tuple`) are builtins unless subscripted.
        if (
            head in self._typing_names
            and head not in self.config.typing_aliases
            and "." not in dotted
        ):
            return True, ImportEdge(qualified_name=f"typing.{head}", alias=head)

        if hasattr(builtins, head) and "." not in dotted:
            return True, None

        aliases = context.alias_table()
        parts = dotted.split(".")
        for size in range(len(parts), 0, -1):
            prefix = ".".join(parts[:size])
            if prefix in aliases:
                return True, aliases[prefix]

        if context.find(head) is not None:
            return True, ImportEdge(qualified_name=f"{context.name}.{head}", alias=head)

        if "." not in dotted:
            candidates = self.index.class_candidates(head)
            chosen = choose(candidates, self.config.match_policy)
            if chosen is not None:
                return True, ImportEdge(
                    qualified_name=chosen.qualified_name, alias=head
                )

        # A star import may provide it; the copied star line keeps it bound.
        if any(edge.is_star for edge in context.imports):
            return True, None
        return False, None


class _Rewriter(ast.NodeTransformer):
    def __init__(self, resolver: TypeResolver, context: SourceModule):
        self.resolver = resolver
        self.context = context
        self.edges: Set[ImportEdge] = set()
        self.ok = True

    def visit_Subscript(self, node: ast.Subscript) -> ast.AST:
        head = _dotted_name(node.value)
        if head is None:
            return self.generic_visit(node)

        aliases = self.resolver.config.typing_aliases
        if head in aliases:
            # Only the subscripted form is rewritten; a bare `tuple` stays builtin.
            alias = aliases[head]
            self.edges.add(ImportEdge(qualified_name=f"typing.{alias}", alias=alias))
            node.value = ast.Name(id=alias, ctx=ast.Load())
            node.slice = self.visit(node.slice)
            return node

        self._record(head)
        if head.rpartition(".")[2] == "Literal":
            return node
        node.slice = self.visit(node.slice)
        return node

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        dotted = _dotted_name(node)
        if dotted is None:
            return self.generic_visit(node)
        self._record(dotted)
        return node

    def visit_Name(self, node: ast.Name) -> ast.AST:
        self._record(node.id)
        return node

    def visit_Constant(self, node: ast.Constant) -> ast.AST:
        # Forward references: the names inside the string need imports too.
        if isinstance(node.value, str):
            hint = self.resolver.resolve(node.value, self.context)
            if hint is None:
                self.ok = False
            else:
                self.edges.update(hint.references)
        return node

    def _record(self, dotted: str) -> None:
        resolved, edge = self.resolver.edge_for(dotted, self.context)
        if not resolved:
            self.ok = False
        elif edge is not None:
            self.edges.add(edge)


class ImportCollector:
    """
    Accumulates the import edges one stub file needs, in encounter order.

    Edges pointing into the stub's own module are dropped, as are edges that
    the module's own import statements already bind (those statements are
    copied into the stub verbatim). One alias is kept per qualified name.
    """

    def __init__(self, module: SourceModule):
        self.module = module
        self._source_bound: Set[Tuple[str, str]] = {
            (edge.qualified_name, edge.alias) for edge in module.imports
        }
        self._seen: Dict[str, ImportEdge] = {}
        self._order: List[ImportEdge] = []

    def add_hint(self, hint: Optional[TypeHint]) -> None:
        if hint is None:
            return
        for member in hint.iter_members():
            ordered = sorted(
                member.references, key=lambda e: (e.qualified_name, e.alias)
            )
            for edge in ordered:
                self.add_edge(edge)

    def add_edge(self, edge: ImportEdge) -> None:
        if edge.is_star:
            return
        if not edge.is_module and edge.module == self.module.name:
            return
        if (edge.qualified_name, edge.alias) in self._source_bound:
            return
        if edge.qualified_name in self._seen:
            return
        self._seen[edge.qualified_name] = edge
        self._order.append(edge)

    @property
    def edges(self) -> Tuple[ImportEdge, ...]:
        return tuple(self._order)

    def copy(self) -> "ImportCollector":
        clone = ImportCollector(self.module)
        clone._seen = dict(self._seen)
        clone._order = list(self._order)
        return clone
