from textwrap import dedent

import libcst as cst

from stubloom.spec import ImportEdge, StubFile
from stubloom.stubgen import ImportOptimizer, ImportPipeline


def optimize(code: str) -> str:
    return ImportOptimizer().optimize(cst.parse_module(dedent(code))).code


def test_optimizer_removes_unused_and_duplicate_imports():
    code = """\
        \"\"\"Doc.\"\"\"
        from __future__ import annotations
        from typing import Any, List
        from typing import Any
        import os
        from m import a as a
        from x import *

        def f(x: List) -> Any: ...
    """

    expected = dedent("""\
        \"\"\"Doc.\"\"\"
        from __future__ import annotations
        from typing import Any, List
        from m import a as a
        from x import *

        def f(x: List) -> Any: ...
    """)

    assert optimize(code) == expected


def test_optimizer_trims_unused_names_in_one_statement():
    code = """\
        from typing import Any, Dict, List

        x: List[Any]
    """

    assert optimize(code).splitlines()[0] == "from typing import Any, List"


def test_names_inside_strings_count_as_used():
    code = """\
        from pkg.colors import Color

        x: "Color"
    """

    assert "from pkg.colors import Color" in optimize(code)


def test_optimizer_is_idempotent():
    code = """\
        from typing import Any, Dict
        import os.path

        def f() -> Any: ...
    """

    once = optimize(code)

    assert once == optimize(once)
    assert "os.path" not in once


def test_pipeline_puts_source_imports_first_and_adds_generated_ones():
    module = cst.parse_module("class Line:\n    color: Color\n    width: Any\n")
    stub_file = StubFile(
        module="pkg.lines",
        imports=(ImportEdge("pkg.colors.Color", "Color"),),
        source_import_lines=("import numpy as np",),
    )

    code = ImportPipeline().apply(module, stub_file).code

    assert code == dedent("""\
        import numpy as np
        from typing import Any
        from pkg.colors import Color

        class Line:
            color: Color
            width: Any
    """)


def test_pipeline_skips_generated_imports_shadowed_by_source_aliases():
    module = cst.parse_module("x: Color\n")
    stub_file = StubFile(
        module="pkg.lines",
        imports=(ImportEdge("pkg.shades.Color", "Color"),),
        source_import_lines=("from pkg.colors import Color as Color",),
    )

    code = ImportPipeline().apply(module, stub_file).code

    assert code == "from pkg.colors import Color as Color\n\nx: Color\n"
