import pytest

from stubloom.test_utils import WorkspaceFactory


@pytest.fixture
def workspace_factory(tmp_path, monkeypatch):
    # A clean workspace per test, used as the working directory.
    monkeypatch.chdir(tmp_path)
    return WorkspaceFactory(tmp_path)
