from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest
import yaml

from tsrefs.settings import Settings


@dataclass
class Workspace:
    root: Path
    settings: Settings

    def tsconfig(self, location: str = ".") -> Path:
        return self.root / location / "tsconfig.json"

    def read(self, location: str = ".") -> Dict[str, Any]:
        return json.loads(self.tsconfig(location).read_text(encoding="utf-8"))

    def text(self, location: str = ".") -> str:
        return self.tsconfig(location).read_text(encoding="utf-8")


ROOT_HUB = {"files": [], "references": []}


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[..., Workspace]:
    """Build a workspace whose listing command is a local Python script."""

    def _make(
        packages: List[Mapping[str, Any]],
        configs: Optional[Mapping[str, Any]] = None,
        root_config: Optional[Any] = ROOT_HUB,
    ) -> Workspace:
        write_json(tmp_path / "package.json", {"private": True, "workspaces": ["packages/*"]})
        records = [{"name": "monorepo", "location": ".", "workspaceDependencies": []}]
        records.extend(packages)
        listing = tmp_path / "workspaces.jsonl"
        listing.write_text("\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8")
        script = tmp_path / "list_workspaces.py"
        script.write_text(
            "import pathlib, sys\nsys.stdout.write(pathlib.Path(sys.argv[1]).read_text())\n",
            encoding="utf-8",
        )
        for location, config in (configs or {}).items():
            (tmp_path / location).mkdir(parents=True, exist_ok=True)
            write_json(tmp_path / location / "tsconfig.json", config)
        if root_config is not None:
            write_json(tmp_path / "tsconfig.json", root_config)
        command = [sys.executable, str(script), str(listing)]
        (tmp_path / "tsrefs.yaml").write_text(yaml.safe_dump({"workspace_command": command}), encoding="utf-8")
        settings = Settings(root=tmp_path, workspace_command=tuple(command))
        return Workspace(root=tmp_path, settings=settings)

    return _make


@pytest.fixture
def chain_workspace(make_workspace: Callable[..., Workspace]) -> Workspace:
    """Composite ``a`` and ``b`` (b depends on a); nothing synced yet."""

    return make_workspace(
        [
            {"name": "a", "location": "packages/a", "workspaceDependencies": []},
            {"name": "b", "location": "packages/b", "workspaceDependencies": ["packages/a"]},
        ],
        configs={
            "packages/a": {"compilerOptions": {"composite": True}},
            "packages/b": {"compilerOptions": {"composite": True}},
        },
        root_config={"files": [], "references": []},
    )
