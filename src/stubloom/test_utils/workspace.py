from pathlib import Path
from textwrap import dedent
from typing import Any, Dict, List

import tomli_w


class WorkspaceFactory:
    """
    Builds an on-disk layout for a generation run: a package under `site/`,
    an optional `pyproject.toml` with `[tool.stubloom]`, and pre-existing
    stubs under `out/` (destination) or `seed/`.
    """

    def __init__(self, root_path: Path):
        self.root_path = root_path
        self._files_to_create: List[Dict[str, Any]] = []
        self._pyproject_data: Dict[str, Any] = {}

    @property
    def site_root(self) -> Path:
        return self.root_path / "site"

    @property
    def destination(self) -> Path:
        return self.root_path / "out"

    @property
    def seed(self) -> Path:
        return self.root_path / "seed"

    def with_config(self, stubloom_config: Dict[str, Any]) -> "WorkspaceFactory":
        tool = self._pyproject_data.setdefault("tool", {})
        tool["stubloom"] = stubloom_config
        return self

    def with_source(self, path: str, content: str) -> "WorkspaceFactory":
        self._files_to_create.append(
            {"path": f"site/{path}", "content": dedent(content), "format": "raw"}
        )
        return self

    def with_stub(self, path: str, content: str) -> "WorkspaceFactory":
        self._files_to_create.append(
            {"path": f"out/{path}", "content": dedent(content), "format": "raw"}
        )
        return self

    def with_seed_stub(self, path: str, content: str) -> "WorkspaceFactory":
        self._files_to_create.append(
            {"path": f"seed/{path}", "content": dedent(content), "format": "raw"}
        )
        return self

    def build(self) -> Path:
        if self._pyproject_data:
            self._files_to_create.append(
                {
                    "path": "pyproject.toml",
                    "content": self._pyproject_data,
                    "format": "toml",
                }
            )

        for file_spec in self._files_to_create:
            output_path = self.root_path / file_spec["path"]
            output_path.parent.mkdir(parents=True, exist_ok=True)
            if file_spec["format"] == "toml":
                with output_path.open("wb") as f:
                    tomli_w.dump(file_spec["content"], f)
            else:
                output_path.write_text(file_spec["content"], encoding="utf-8")

        return self.root_path
