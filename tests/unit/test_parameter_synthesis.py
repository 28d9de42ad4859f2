import pytest

from stubloom.config import StubloomConfig
from stubloom.spec import ParameterKind
from stubloom.stubgen import StubContext
from stubloom.stubgen.parameters import stub_default
from stubloom.test_utils import build_index

CONFIG = StubloomConfig(root_package="pkg")

SOURCES = {
    "pkg/lines.py": """
        class Line2D:
            def __init__(self, xdata, ydata, *, linewidth=None, color=None, **kwargs):
                self._linewidth = linewidth

            def get_linewidth(self) -> float:
                return self._linewidth

            def get_color(self):
                \"\"\"
                Returns
                -------
                str
                \"\"\"
    """,
    "pkg/axes.py": """
        class Axes:
            def plot(self, *args, scalex=True, **kwargs):
                \"\"\"
                Plot y versus x.

                Other Parameters
                ----------------
                **kwargs : `~pkg.lines.Line2D` properties
                    Line properties.
                \"\"\"

            def text(self, x, y, s, **kwargs):
                \"\"\"
                Add text.

                Other Parameters
                ----------------
                **kwargs : `.Line2D`
                    Text properties.
                \"\"\"

            def annotate(self, color, **kwargs):
                \"\"\"
                Annotate.

                Other Parameters
                ----------------
                **kwargs : `.Line2D`
                \"\"\"

            def missing(self, **kwargs):
                \"\"\"
                Other Parameters
                ----------------
                **kwargs : `.NotAClass`
                \"\"\"
    """,
}


@pytest.fixture
def context():
    return StubContext(build_index(SOURCES), CONFIG)


def synthesize(context, method: str):
    owner = context.index.get_class("pkg.axes.Axes")
    return context.parameters.synthesize(owner.find_method(method), owner)


def describe(parameters):
    return [
        (p.name, p.kind, p.hint.expression if p.hint else None, p.default)
        for p in parameters
    ]


def test_hidden_parameters_come_after_real_ones_and_before_kwargs(context):
    parameters = synthesize(context, "plot")

    assert describe(parameters) == [
        ("self", ParameterKind.POSITIONAL_OR_KEYWORD, None, None),
        ("args", ParameterKind.VAR_POSITIONAL, None, None),
        ("scalex", ParameterKind.KEYWORD_ONLY, None, "True"),
        ("xdata", ParameterKind.KEYWORD_ONLY, None, "..."),
        ("ydata", ParameterKind.KEYWORD_ONLY, None, "..."),
        ("linewidth", ParameterKind.KEYWORD_ONLY, "float", "..."),
        ("color", ParameterKind.KEYWORD_ONLY, "str", "..."),
        ("kwargs", ParameterKind.VAR_KEYWORD, None, None),
    ]
    assert [p.synthetic for p in parameters] == [
        False, False, False, True, True, True, True, False
    ]


def test_hidden_parameters_are_positional_without_star_args(context):
    kinds = {p.name: p.kind for p in synthesize(context, "text")}

    assert kinds["s"] == ParameterKind.POSITIONAL_OR_KEYWORD
    assert kinds["linewidth"] == ParameterKind.POSITIONAL_OR_KEYWORD


def test_real_parameters_shadow_hidden_ones(context):
    names = [p.name for p in synthesize(context, "annotate")]

    assert names.count("color") == 1
    assert names.index("color") == 1


def test_unknown_hidden_class_leaves_signature_alone(context):
    names = [p.name for p in synthesize(context, "missing")]

    assert names == ["self", "kwargs"]


def test_constructor_parameters_typed_from_getters(context):
    owner = context.index.get_class("pkg.lines.Line2D")

    parameters = context.parameters.synthesize(owner.constructor(), owner)
    hints = {p.name: p.hint.expression if p.hint else None for p in parameters}

    assert hints["linewidth"] == "float"
    assert hints["color"] == "str"
    assert hints["xdata"] is None


def test_resolve_class_by_qualified_name_or_short_name(context):
    parameters = context.parameters

    assert parameters.resolve_class("pkg.lines.Line2D").name == "Line2D"
    assert parameters.resolve_class("Line2D").qualified_name == "pkg.lines.Line2D"
    assert parameters.resolve_class("pkg.nowhere.Line2D") is None


@pytest.mark.parametrize(
    "default, expected",
    [
        (None, None),
        ("None", "None"),
        ("-1", "-1"),
        ("'solid'", "'solid'"),
        ("'" + "x" * 60 + "'", "..."),
        ("[]", "..."),
        ("rcParams['lines.color']", "..."),
    ],
)
def test_stub_default(default, expected):
    assert stub_default(default) == expected
