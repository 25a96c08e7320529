"""Reference sync engine."""
from .engine import (
    composite_locations,
    package_references,
    root_references,
    run,
    run_sync,
    sync_package,
    sync_root,
)

__all__ = [
    "composite_locations",
    "package_references",
    "root_references",
    "run",
    "run_sync",
    "sync_package",
    "sync_root",
]
