from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path

import pytest

from tsrefs.core.errors import ConfigParseError
from tsrefs.core.models import ConfigDescriptor, Package, SyncMode, SyncStatus
from tsrefs.sync import composite_locations, engine, package_references, root_references, run, run_sync
from tsrefs.workspace import prober
from tsrefs.workspace.prober import read_raw

B_EXPECTED = """{
  "compilerOptions": {
    "composite": true
  },
  "references": [
    {
      "path": "../a"
    }
  ]
}
"""


def _packages(*items: Package) -> dict:
    return {item.name: item for item in items}


def test_package_references_follow_dependency_order() -> None:
    a = Package("a", "packages/a")
    b = Package("b", "packages/b")
    c = Package("c", "libs/c", dependencies=("packages/b", "packages/a"))
    refs = package_references(c, _packages(a, b, c), frozenset({"packages/a", "packages/b"}))
    assert refs == [{"path": "../../packages/b"}, {"path": "../../packages/a"}]


def test_package_references_exclude_self_and_non_composite() -> None:
    a = Package("a", "packages/a", dependencies=("packages/a", "packages/b", "packages/c"))
    b = Package("b", "packages/b")
    c = Package("c", "packages/c")
    refs = package_references(a, _packages(a, b, c), frozenset({"packages/a", "packages/c"}))
    assert refs == [{"path": "../c"}]


def test_package_references_resolve_dependency_names() -> None:
    a = Package("@scope/a", "packages/a")
    b = Package("@scope/b", "packages/b", dependencies=("@scope/a",))
    refs = package_references(b, _packages(a, b), frozenset({"packages/a"}))
    assert refs == [{"path": "../a"}]


def test_root_references_include_non_composite_configs(tmp_path: Path) -> None:
    descriptors = [
        ConfigDescriptor(Package("a", "packages/a"), tmp_path / "packages/a/tsconfig.json", True),
        ConfigDescriptor(Package("b", "packages/b")),
        ConfigDescriptor(Package("c", "packages/c"), tmp_path / "packages/c/tsconfig.json", False),
    ]
    assert composite_locations(descriptors) == frozenset({"packages/a"})
    assert root_references(tmp_path, descriptors) == [
        {"path": "packages/a/tsconfig.json"},
        {"path": "packages/c/tsconfig.json"},
    ]


@pytest.mark.asyncio
async def test_write_syncs_chain_workspace(chain_workspace) -> None:
    report = await run_sync(chain_workspace.settings, SyncMode.WRITE)
    assert report.changed
    assert chain_workspace.text("packages/b") == B_EXPECTED
    assert chain_workspace.read("packages/a")["references"] == []
    assert chain_workspace.read() == {
        "files": [],
        "references": [
            {"path": "packages/a/tsconfig.json"},
            {"path": "packages/b/tsconfig.json"},
        ],
    }
    assert [outcome.label for outcome in report.packages] == ["a", "b"]
    assert report.root.status is SyncStatus.WRITTEN


@pytest.mark.asyncio
async def test_write_is_idempotent(chain_workspace) -> None:
    await run_sync(chain_workspace.settings, SyncMode.WRITE)
    snapshot = {loc: chain_workspace.text(loc) for loc in (".", "packages/a", "packages/b")}
    report = await run_sync(chain_workspace.settings, SyncMode.WRITE)
    assert not report.changed
    assert not report.out_of_sync
    assert all(outcome.status is SyncStatus.IN_SYNC for outcome in report.packages)
    assert {loc: chain_workspace.text(loc) for loc in snapshot} == snapshot


@pytest.mark.asyncio
async def test_check_after_write_is_clean(chain_workspace) -> None:
    await run_sync(chain_workspace.settings, SyncMode.WRITE)
    report = await run_sync(chain_workspace.settings, SyncMode.CHECK)
    assert not report.out_of_sync


@pytest.mark.asyncio
async def test_check_reports_drift_without_writing(chain_workspace) -> None:
    before = {loc: chain_workspace.text(loc) for loc in (".", "packages/a", "packages/b")}
    report = await run_sync(chain_workspace.settings, SyncMode.CHECK)
    assert report.out_of_sync
    assert not report.changed
    assert {outcome.label: outcome.status for outcome in report.packages} == {
        "a": SyncStatus.OUT_OF_SYNC,
        "b": SyncStatus.OUT_OF_SYNC,
    }
    assert {loc: chain_workspace.text(loc) for loc in before} == before


@pytest.mark.asyncio
async def test_formatting_only_difference_is_drift(chain_workspace) -> None:
    await run_sync(chain_workspace.settings, SyncMode.WRITE)
    path = chain_workspace.tsconfig("packages/a")
    path.write_text(json.dumps(json.loads(path.read_text()), indent=4) + "\n", encoding="utf-8")
    report = await run_sync(chain_workspace.settings, SyncMode.CHECK)
    assert [o.label for o in report.packages if o.out_of_sync] == ["a"]
    assert not report.root.out_of_sync


@pytest.mark.asyncio
async def test_package_without_config_is_skipped(make_workspace) -> None:
    ws = make_workspace(
        [
            {"name": "b", "location": "packages/b", "workspaceDependencies": ["packages/c"]},
            {"name": "c", "location": "packages/c", "workspaceDependencies": []},
        ],
        configs={"packages/b": {"compilerOptions": {"composite": True}}},
    )
    (ws.root / "packages/c").mkdir(parents=True)
    report = await run_sync(ws.settings, SyncMode.WRITE)
    assert report.skipped == ("c",)
    assert [outcome.label for outcome in report.packages] == ["b"]
    assert ws.read("packages/b")["references"] == []
    assert ws.read()["references"] == [{"path": "packages/b/tsconfig.json"}]
    assert not (ws.root / "packages/c/tsconfig.json").exists()


@pytest.mark.asyncio
async def test_non_composite_package_is_never_referenced(make_workspace) -> None:
    ws = make_workspace(
        [
            {"name": "app", "location": "apps/app", "workspaceDependencies": ["packages/lib", "packages/util"]},
            {"name": "lib", "location": "packages/lib", "workspaceDependencies": ["packages/util"]},
            {"name": "util", "location": "packages/util", "workspaceDependencies": []},
        ],
        configs={
            "apps/app": {"compilerOptions": {}},
            "packages/lib": {"compilerOptions": {"composite": False}},
            "packages/util": {"compilerOptions": {"composite": True}},
        },
    )
    await run_sync(ws.settings, SyncMode.WRITE)
    assert ws.read("apps/app")["references"] == [{"path": "../../packages/util"}]
    assert ws.read("packages/lib")["references"] == [{"path": "../util"}]
    assert [ref["path"] for ref in ws.read()["references"]] == [
        "apps/app/tsconfig.json",
        "packages/lib/tsconfig.json",
        "packages/util/tsconfig.json",
    ]


@pytest.mark.asyncio
async def test_self_dependency_is_ignored(make_workspace) -> None:
    ws = make_workspace(
        [{"name": "a", "location": "packages/a", "workspaceDependencies": ["packages/a"]}],
        configs={"packages/a": {"compilerOptions": {"composite": True}}},
    )
    await run_sync(ws.settings, SyncMode.WRITE)
    assert ws.read("packages/a")["references"] == []


@pytest.mark.asyncio
async def test_other_fields_and_key_order_preserved(make_workspace) -> None:
    ws = make_workspace(
        [
            {"name": "a", "location": "packages/a", "workspaceDependencies": []},
            {"name": "b", "location": "packages/b", "workspaceDependencies": ["packages/a"]},
        ],
        configs={
            "packages/a": {"compilerOptions": {"composite": True}},
            "packages/b": {
                "extends": "../../tsconfig.base.json",
                "references": [{"path": "../stale"}, {"path": "../a"}],
                "compilerOptions": {"outDir": "dist", "rootDir": "src"},
                "include": ["src"],
            },
        },
    )
    await run_sync(ws.settings, SyncMode.WRITE)
    config = ws.read("packages/b")
    assert list(config) == ["extends", "references", "compilerOptions", "include"]
    assert config["references"] == [{"path": "../a"}]
    assert config["include"] == ["src"]


@pytest.mark.asyncio
async def test_root_is_rebuilt_from_scratch(make_workspace) -> None:
    ws = make_workspace(
        [{"name": "a", "location": "packages/a", "workspaceDependencies": []}],
        configs={"packages/a": {"compilerOptions": {"composite": True}, "references": []}},
        root_config={"compilerOptions": {"strict": True}, "references": []},
    )
    report = await run_sync(ws.settings, SyncMode.WRITE)
    assert report.root.status is SyncStatus.WRITTEN
    assert ws.read() == {"files": [], "references": [{"path": "packages/a/tsconfig.json"}]}


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", [SyncMode.CHECK, SyncMode.WRITE])
async def test_missing_root_config_aborts(make_workspace, mode) -> None:
    ws = make_workspace(
        [{"name": "a", "location": "packages/a", "workspaceDependencies": []}],
        configs={"packages/a": {"compilerOptions": {"composite": True}, "references": []}},
        root_config=None,
    )
    with pytest.raises(FileNotFoundError):
        await run_sync(ws.settings, mode)
    assert not ws.tsconfig().exists()


@pytest.mark.asyncio
async def test_non_utf8_package_config_is_a_parse_error(make_workspace) -> None:
    ws = make_workspace(
        [{"name": "a", "location": "packages/a", "workspaceDependencies": []}],
        configs={"packages/a": {}},
    )
    ws.tsconfig("packages/a").write_bytes(b'{"name": "\xff"}\n')
    with pytest.raises(ConfigParseError) as exc:
        await run_sync(ws.settings, SyncMode.CHECK)
    assert "UTF-8" in str(exc.value)


@pytest.mark.asyncio
async def test_package_reads_overlap(chain_workspace, monkeypatch) -> None:
    # Each read waits for the other one; serial reads would break the barrier.
    barrier = threading.Barrier(2, timeout=5)

    def waiting_read(path: Path) -> str:
        barrier.wait()
        return read_raw(path)

    monkeypatch.setattr(prober, "read_raw", waiting_read)
    descriptors = await prober.probe_all(
        chain_workspace.root,
        [Package("a", "packages/a"), Package("b", "packages/b")],
        "tsconfig.json",
    )
    assert [d.is_composite for d in descriptors] == [True, True]

    barrier.reset()
    monkeypatch.setattr(engine, "read_raw", waiting_read)
    packages = {d.package.name: d.package for d in descriptors}
    outcomes = await asyncio.gather(
        *(engine.sync_package(d, packages, frozenset(), SyncMode.CHECK) for d in descriptors)
    )
    assert [outcome.label for outcome in outcomes] == ["a", "b"]


@pytest.mark.asyncio
async def test_invalid_package_config_aborts(make_workspace) -> None:
    ws = make_workspace(
        [{"name": "a", "location": "packages/a", "workspaceDependencies": []}],
        configs={"packages/a": {}},
    )
    ws.tsconfig("packages/a").write_text("{ // comment\n}", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        await run_sync(ws.settings, SyncMode.CHECK)


def test_run_discovers_root_from_nested_directory(chain_workspace) -> None:
    report = run(SyncMode.WRITE, start=chain_workspace.root / "packages" / "b")
    assert report.changed
    assert chain_workspace.text("packages/b") == B_EXPECTED
