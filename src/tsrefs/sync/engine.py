"""Compute target project references and check or apply them."""
from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from dataclasses import replace
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence

from tsrefs.core.models import (
    ROOT_LABEL,
    ConfigDescriptor,
    Package,
    SyncMode,
    SyncOutcome,
    SyncReport,
    SyncStatus,
)
from tsrefs.formatting import render
from tsrefs.settings import Settings, load_settings
from tsrefs.workspace import find_workspace_root, list_packages, probe_all
from tsrefs.workspace.prober import parse_config, read_raw, write_raw

logger = logging.getLogger(__name__)

Reference = Dict[str, str]


def composite_locations(descriptors: Sequence[ConfigDescriptor]) -> FrozenSet[str]:
    return frozenset(d.package.location for d in descriptors if d.is_composite)


def resolve_location(dependency: str, packages: Mapping[str, Package]) -> str:
    """Map a dependency identifier to a location: by name, else as a location."""

    package = packages.get(dependency)
    return package.location if package is not None else dependency


def package_references(
    package: Package,
    packages: Mapping[str, Package],
    composite: FrozenSet[str],
) -> List[Reference]:
    """References ``package`` should declare, in dependency order."""

    references: List[Reference] = []
    for dependency in package.dependencies:
        location = resolve_location(dependency, packages)
        if location not in composite or location == package.location:
            continue
        references.append({"path": posixpath.relpath(location, package.location)})
    return references


def root_references(root: Path, descriptors: Sequence[ConfigDescriptor]) -> List[Reference]:
    return [
        {"path": Path(os.path.relpath(d.path, root)).as_posix()}
        for d in descriptors
        if d.path is not None
    ]


def root_target(root: Path, descriptors: Sequence[ConfigDescriptor]) -> dict:
    return {"files": [], "references": root_references(root, descriptors)}


async def sync_package(
    descriptor: ConfigDescriptor,
    packages: Mapping[str, Package],
    composite: FrozenSet[str],
    mode: SyncMode,
) -> Optional[SyncOutcome]:
    """Sync one package config; packages without a config yield None."""

    path = descriptor.path
    if path is None:
        return None
    current_text = await asyncio.to_thread(read_raw, path)
    current = parse_config(current_text, path)
    target = {**current, "references": package_references(descriptor.package, packages, composite)}
    target_text = await asyncio.to_thread(render, target, path)
    status = await _apply(path, current_text, target_text, mode)
    logger.debug("%s: %s", descriptor.package.name, status.value)
    return SyncOutcome(label=descriptor.package.name, path=path, status=status)


async def sync_root(
    root: Path,
    filename: str,
    descriptors: Sequence[ConfigDescriptor],
    mode: SyncMode,
    *,
    force_write: bool = False,
) -> SyncOutcome:
    """Compare the root hub config; ``force_write`` rewrites it regardless.

    The root config must exist; a missing file aborts the run.
    """

    path = root / filename
    current_text = await asyncio.to_thread(read_raw, path)
    target_text = await asyncio.to_thread(render, root_target(root, descriptors), path)
    status = await _apply(path, current_text, target_text, mode, force=force_write)
    logger.debug("%s: %s", ROOT_LABEL, status.value)
    return SyncOutcome(label=ROOT_LABEL, path=path, status=status)


async def run_sync(settings: Settings, mode: SyncMode) -> SyncReport:
    """Run one check or write pass over the workspace."""

    root = settings.root
    packages = await list_packages(root, settings.workspace_command)
    descriptors = await probe_all(root, packages.values(), settings.tsconfig_name)
    composite = composite_locations(descriptors)
    logger.debug("Composite packages: %s", ", ".join(sorted(composite)) or "none")

    results = await asyncio.gather(
        *(sync_package(descriptor, packages, composite, mode) for descriptor in descriptors)
    )
    outcomes = [outcome for outcome in results if outcome is not None]
    skipped = [d.package.name for d in descriptors if not d.has_config]
    packages_changed = any(outcome.out_of_sync for outcome in outcomes)

    root_outcome = await sync_root(
        root,
        settings.root_tsconfig_name,
        descriptors,
        mode,
        force_write=packages_changed,
    )
    return SyncReport(mode=mode, packages=tuple(outcomes), root=root_outcome, skipped=tuple(skipped))


def run(mode: SyncMode, *, start: Optional[Path] = None, settings: Optional[Settings] = None) -> SyncReport:
    """Synchronous entry point: discover the workspace and run one pass."""

    if settings is None or settings.root is None:
        root = find_workspace_root(start or Path.cwd())
        settings = load_settings(root) if settings is None else replace(settings, root=root)
    logger.debug("Workspace root: %s", settings.root)
    return asyncio.run(run_sync(settings, mode))


async def _apply(path: Path, current: str, target: str, mode: SyncMode, *, force: bool = False) -> SyncStatus:
    in_sync = current == target
    if mode is SyncMode.CHECK:
        return SyncStatus.IN_SYNC if in_sync else SyncStatus.OUT_OF_SYNC
    if in_sync and not force:
        return SyncStatus.IN_SYNC
    await asyncio.to_thread(write_raw, path, target)
    return SyncStatus.WRITTEN if not in_sync else SyncStatus.IN_SYNC
