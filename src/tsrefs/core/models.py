"""Dataclasses shared across tsrefs subsystems."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple


ROOT_LABEL = "<root>"


class SyncMode(str, Enum):
    CHECK = "check"
    WRITE = "write"


class SyncStatus(str, Enum):
    IN_SYNC = "in-sync"
    OUT_OF_SYNC = "out-of-sync"
    WRITTEN = "written"


@dataclass(frozen=True)
class Package:
    """A workspace member as reported by the workspace manager."""

    name: str
    location: str
    dependencies: Tuple[str, ...] = tuple()


@dataclass(frozen=True)
class ConfigDescriptor:
    """Result of probing a package for its compiler configuration."""

    package: Package
    path: Optional[Path] = None
    is_composite: bool = False

    @property
    def has_config(self) -> bool:
        return self.path is not None


@dataclass(frozen=True)
class SyncOutcome:
    label: str
    path: Path
    status: SyncStatus

    @property
    def out_of_sync(self) -> bool:
        return self.status is not SyncStatus.IN_SYNC


@dataclass(frozen=True)
class SyncReport:
    """Structured result of one check or write run."""

    mode: SyncMode
    packages: Sequence[SyncOutcome]
    root: SyncOutcome
    skipped: Sequence[str] = field(default_factory=tuple)

    @property
    def out_of_sync(self) -> bool:
        return self.root.out_of_sync or any(outcome.out_of_sync for outcome in self.packages)

    @property
    def changed(self) -> bool:
        return self.root.status is SyncStatus.WRITTEN or any(
            outcome.status is SyncStatus.WRITTEN for outcome in self.packages
        )
