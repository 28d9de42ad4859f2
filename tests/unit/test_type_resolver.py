import pytest

from stubloom.config import MatchPolicy, StubloomConfig
from stubloom.spec import ImportEdge
from stubloom.stubgen import ImportCollector, TypeResolver
from stubloom.test_utils import build_index

SOURCES = {
    "pkg/colors.py": """
        class Color:
            pass
    """,
    "pkg/shades.py": """
        class Shade:
            pass
    """,
    "pkg/alt/shades.py": """
        class Shade:
            pass
    """,
    "pkg/lines.py": """
        import numpy as np
        from pkg.colors import Color

        class Line:
            pass
    """,
    "pkg/starry.py": """
        from pkg.colors import *
    """,
}

COLOR = ImportEdge("pkg.colors.Color", "Color")


@pytest.fixture
def index():
    return build_index(SOURCES)


@pytest.fixture
def resolver(index):
    return TypeResolver(index, StubloomConfig(root_package="pkg"))


@pytest.fixture
def lines(index):
    return index.get_module("pkg.lines")


def test_builtins_need_no_import(resolver, lines):
    hint = resolver.resolve("int", lines)

    assert hint is not None
    assert hint.expression == "int"
    assert hint.references == frozenset()


def test_typing_vocabulary_is_imported_from_typing(resolver, lines):
    hint = resolver.resolve("List[int]", lines)

    assert hint.expression == "List[int]"
    assert hint.references == {ImportEdge("typing.List", "List")}


def test_subscripted_tuple_uses_typing_alias(resolver, lines):
    subscripted = resolver.resolve("tuple[int, str]", lines)
    bare = resolver.resolve("tuple", lines)

    assert subscripted.expression == "Tuple[int, str]"
    assert subscripted.references == {ImportEdge("typing.Tuple", "Tuple")}
    assert bare.expression == "tuple"
    assert bare.references == frozenset()


def test_name_bound_by_module_import_reuses_binding(resolver, lines):
    color = resolver.resolve("Color", lines)
    array = resolver.resolve("np.ndarray", lines)

    assert color.references == {COLOR}
    assert array.expression == "np.ndarray"
    assert array.references == {ImportEdge("numpy", "np", is_module=True)}


def test_local_declaration_points_back_at_module(resolver, lines):
    hint = resolver.resolve("Line", lines)

    assert hint.references == {ImportEdge("pkg.lines.Line", "Line")}


def test_unknown_name_is_searched_in_index(resolver, lines):
    # pkg/alt/shades.py sorts before pkg/shades.py
    hint = resolver.resolve("Shade", lines)

    assert hint.references == {ImportEdge("pkg.alt.shades.Shade", "Shade")}


def test_unique_policy_rejects_ambiguous_names(index, lines):
    config = StubloomConfig(root_package="pkg", match_policy=MatchPolicy.UNIQUE)
    resolver = TypeResolver(index, config)

    assert resolver.resolve("Shade", lines) is None
    assert resolver.resolve("Color", lines) is not None


def test_unresolvable_name_drops_whole_hint(resolver, lines):
    assert resolver.resolve("Missing", lines) is None
    assert resolver.resolve("List[Missing]", lines) is None
    assert resolver.resolve("not valid(", lines) is None
    assert resolver.resolve("", lines) is None


def test_star_import_keeps_unknown_names(resolver, index):
    starry = index.get_module("pkg.starry")

    hint = resolver.resolve("Whatever", starry)

    assert hint is not None
    assert hint.references == frozenset()


def test_union_members_resolve_independently(resolver, lines):
    hint = resolver.resolve("Color | Shade", lines)

    assert hint.is_union
    assert [m.expression for m in hint.members] == ["Color", "Shade"]
    assert hint.references == {COLOR, ImportEdge("pkg.alt.shades.Shade", "Shade")}


def test_optional_renders_as_union_with_none(resolver, lines):
    hint = resolver.resolve("Optional[Color]", lines)

    assert hint.expression == "Color | None"
    assert hint.references == {COLOR}


def test_string_forward_reference(resolver, lines):
    hint = resolver.resolve("'Color'", lines)

    assert hint.references == {COLOR}


def test_literal_values_are_not_resolved(resolver, lines):
    hint = resolver.resolve("Literal['solid', 'dashed']", lines)

    assert hint is not None
    assert hint.references == {ImportEdge("typing.Literal", "Literal")}


def test_collector_drops_self_and_source_bound_edges(resolver, lines):
    collector = ImportCollector(lines)

    collector.add_hint(resolver.resolve("Line", lines))
    collector.add_hint(resolver.resolve("Color", lines))
    collector.add_hint(resolver.resolve("Shade | List[int]", lines))
    collector.add_edge(ImportEdge("pkg.colors", "*", is_star=True))

    assert collector.edges == (
        ImportEdge("pkg.alt.shades.Shade", "Shade"),
        ImportEdge("typing.List", "List"),
    )


def test_collector_keeps_one_alias_per_name(lines):
    collector = ImportCollector(lines)

    collector.add_edge(ImportEdge("pkg.shades.Shade", "Shade"))
    collector.add_edge(ImportEdge("pkg.shades.Shade", "S"))

    assert collector.edges == (ImportEdge("pkg.shades.Shade", "Shade"),)


def test_collector_copy_is_independent(lines):
    collector = ImportCollector(lines)
    collector.add_edge(ImportEdge("pkg.shades.Shade", "Shade"))

    clone = collector.copy()
    clone.add_edge(ImportEdge("typing.Any", "Any"))

    assert len(collector.edges) == 1
    assert len(clone.edges) == 2
