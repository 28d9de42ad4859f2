from pathlib import Path
from textwrap import dedent

import pytest

from stubloom.config import MatchPolicy, StubloomConfig, load_config_from_path


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "pyproject.toml").write_text(
        dedent("""
        [tool.stubloom]
        root_package = "matplotlib"
        excluded_paths = ["tests", "backends"]
        match_policy = "unique"
        typing_aliases = { tuple = "Tuple", type = "Type" }
    """)
    )
    nested = tmp_path / "src" / "deep"
    nested.mkdir(parents=True)
    return tmp_path


def test_load_config_reads_tool_section(workspace: Path):
    # Act
    config = load_config_from_path(workspace)

    # Assert
    assert config.root_package == "matplotlib"
    assert config.excluded_paths == ("tests", "backends")
    assert config.match_policy == MatchPolicy.UNIQUE
    assert config.typing_aliases == {"tuple": "Tuple", "type": "Type"}
    # Untouched keys keep their defaults
    assert config.getter_prefix == "get_"
    assert config.hidden_params_section == "Other Parameters"


def test_load_config_searches_upwards(workspace: Path):
    config = load_config_from_path(workspace / "src" / "deep")

    assert config.root_package == "matplotlib"


def test_explicit_root_package_overrides_file(workspace: Path):
    config = load_config_from_path(workspace, root_package="other")

    assert config.root_package == "other"
    assert config.excluded_paths == ("tests", "backends")


def test_default_root_package_does_not_override_file(workspace: Path):
    config = load_config_from_path(workspace, default_root_package="site")

    assert config.root_package == "matplotlib"


def test_missing_pyproject_gives_defaults(tmp_path: Path, monkeypatch):
    def no_pyproject(search_path: Path) -> Path:
        raise FileNotFoundError(search_path)

    monkeypatch.setattr("stubloom.config.loader._find_pyproject_toml", no_pyproject)

    config = load_config_from_path(tmp_path, root_package="pkg")

    assert config == StubloomConfig(root_package="pkg")
    assert config.excluded_attributes == (
        "_log",
        "__author__",
        "__credits__",
        "__license__",
        "__doc__",
    )
    assert "tuple" in config.typing_names


def test_unknown_key_is_rejected(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text("[tool.stubloom]\nnot_a_key = 1\n")

    with pytest.raises(ValueError, match="not_a_key"):
        load_config_from_path(tmp_path)


def test_invalid_match_policy_is_rejected(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text('[tool.stubloom]\nmatch_policy = "best"\n')

    with pytest.raises(ValueError):
        load_config_from_path(tmp_path)
