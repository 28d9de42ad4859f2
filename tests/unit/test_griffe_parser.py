from textwrap import dedent

import pytest

from stubloom.lang.python import GriffePythonParser
from stubloom.lang.python.utils import path_to_module_name, resolve_relative_module
from stubloom.spec import ClassDecl, FunctionDecl, ImportEdge, ParameterKind


@pytest.fixture
def parser() -> GriffePythonParser:
    return GriffePythonParser()


def test_module_name_from_path():
    assert path_to_module_name("pkg/sub/mod.py") == "pkg.sub.mod"
    assert path_to_module_name("pkg/sub/__init__.py") == "pkg.sub"


def test_relative_module_resolution():
    assert resolve_relative_module("pkg.sub.mod", False, 1, "core") == "pkg.sub.core"
    assert resolve_relative_module("pkg.sub.mod", False, 2, "core") == "pkg.core"
    assert resolve_relative_module("pkg.sub", True, 1, "core") == "pkg.sub.core"
    assert resolve_relative_module("pkg", True, 1) == "pkg"
    assert resolve_relative_module("pkg.mod", False, 0, "os.path") == "os.path"


def test_parse_declarations_in_source_order(parser: GriffePythonParser):
    code = dedent("""
        VERSION = "1.0"

        class Line:
            \"\"\"A line.\"\"\"
            zorder = 2

            def __init__(self, width: float, *args, color=None, **kwargs):
                self.width = width

            async def draw(self, renderer) -> None:
                pass

        def helper(a, /, b, *, c=1):
            pass
    """)

    module = parser.parse(code, file_path="pkg/lines.py")

    assert module.name == "pkg.lines"
    assert [d.name for d in module.declarations] == ["VERSION", "Line", "helper"]

    line = module.find("Line")
    assert isinstance(line, ClassDecl)
    assert line.qualified_name == "pkg.lines.Line"
    assert line.docstring == "A line."
    assert [a.name for a in line.class_attributes] == ["zorder"]
    assert [a.name for a in line.instance_attributes] == ["width"]
    assert line.instance_attributes[0].value == "width"

    init = line.constructor()
    assert init is not None
    assert init.has_receiver
    kinds = {p.name: p.kind for p in init.parameters}
    assert kinds == {
        "self": ParameterKind.POSITIONAL_OR_KEYWORD,
        "width": ParameterKind.POSITIONAL_OR_KEYWORD,
        "args": ParameterKind.VAR_POSITIONAL,
        "color": ParameterKind.KEYWORD_ONLY,
        "kwargs": ParameterKind.VAR_KEYWORD,
    }
    assert init.parameters[1].annotation == "float"
    assert init.parameters[3].default == "None"

    draw = line.find_method("draw")
    assert draw is not None
    assert draw.is_async
    assert draw.return_annotation == "None"

    helper = module.find("helper")
    assert isinstance(helper, FunctionDecl)
    assert not helper.has_receiver
    assert [p.kind for p in helper.parameters] == [
        ParameterKind.POSITIONAL_ONLY,
        ParameterKind.POSITIONAL_OR_KEYWORD,
        ParameterKind.KEYWORD_ONLY,
    ]


def test_parse_collects_top_level_imports_only(parser: GriffePythonParser):
    code = dedent("""
        from __future__ import annotations
        import numpy as np
        import os.path
        from typing import TYPE_CHECKING
        from ..core import Thing, Other as O
        from .helpers import *

        if TYPE_CHECKING:
            from pkg.colors import Color

        def f():
            import json
    """)

    module = parser.parse(code, file_path="pkg/sub/mod.py")

    assert module.import_lines == (
        "import numpy as np",
        "import os.path",
        "from typing import TYPE_CHECKING as TYPE_CHECKING",
        "from ..core import Thing as Thing, Other as O",
        "from .helpers import *",
        "from pkg.colors import Color as Color",
    )
    aliases = module.alias_table()
    assert aliases["np"] == ImportEdge("numpy", "np", is_module=True)
    assert aliases["os.path"] == ImportEdge("os.path", "os.path", is_module=True)
    assert aliases["Thing"] == ImportEdge("pkg.core.Thing", "Thing")
    assert aliases["O"] == ImportEdge("pkg.core.Other", "O")
    assert aliases["Color"] == ImportEdge("pkg.colors.Color", "Color")
    assert "json" not in aliases
    assert "annotations" not in aliases
    stars = [e.qualified_name for e in module.imports if e.is_star]
    assert stars == ["pkg.sub.helpers"]


def test_imported_names_are_not_declarations(parser: GriffePythonParser):
    module = parser.parse("from os import path\nx = 1\n", file_path="pkg/mod.py")

    assert [d.name for d in module.declarations] == ["x"]


def test_property_setter_is_kept_as_second_function(parser: GriffePythonParser):
    code = dedent("""
        class Box:
            @property
            def size(self) -> int:
                return 1

            @size.setter
            def size(self, value: int) -> None:
                pass
    """)

    box = parser.parse(code, file_path="pkg/box.py").find("Box")

    assert isinstance(box, ClassDecl)
    assert [(m.name, m.decorators) for m in box.methods] == [
        ("size", ("property",)),
        ("size", ("size.setter",)),
    ]


def test_syntax_error_raises_value_error(parser: GriffePythonParser):
    with pytest.raises(ValueError, match="Syntax error"):
        parser.parse("def broken(:\n", file_path="pkg/broken.py")


def test_variadic_parameters_carry_no_default(parser: GriffePythonParser):
    module = parser.parse(
        "def plot(a, *args, b=1, **kwargs):\n    pass\n", file_path="pkg/api.py"
    )

    plot = module.find("plot")
    assert isinstance(plot, FunctionDecl)
    assert [(p.name, p.default) for p in plot.parameters] == [
        ("a", None),
        ("args", None),
        ("b", "1"),
        ("kwargs", None),
    ]


def test_class_body_assignments_are_class_level(parser: GriffePythonParser):
    code = dedent("""
        class Artist:
            zorder = 2
            label: str

            def __init__(self, alpha):
                self.alpha = alpha
                self.zorder = 3
    """)

    artist = parser.parse(code, file_path="pkg/artist.py").find("Artist")

    assert isinstance(artist, ClassDecl)
    assert [a.name for a in artist.class_attributes] == ["zorder"]
    assert [a.name for a in artist.instance_attributes] == ["label", "alpha"]


def test_property_deleter_and_getter_docstring(parser: GriffePythonParser):
    code = dedent("""
        class Box:
            @property
            def size(self) -> int:
                \"\"\"The size.\"\"\"
                return 1

            @size.deleter
            def size(self):
                pass
    """)

    box = parser.parse(code, file_path="pkg/box.py").find("Box")

    assert isinstance(box, ClassDecl)
    getter, deleter = box.methods
    assert getter.return_annotation == "int"
    assert getter.docstring == "The size."
    assert getter.has_receiver
    assert getter.qualified_name == "pkg.box.Box.size"
    assert deleter.decorators == ("size.deleter",)
    assert [p.name for p in deleter.parameters] == ["self"]
