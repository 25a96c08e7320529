"""Core models and errors exposed at the package level."""
from .errors import (
    ConfigParseError,
    FormatterConfigError,
    SettingsError,
    TsrefsError,
    WorkspaceListingError,
    WorkspaceRootNotFoundError,
)
from .models import ConfigDescriptor, Package, SyncMode, SyncOutcome, SyncReport, SyncStatus

__all__ = [
    "ConfigDescriptor",
    "ConfigParseError",
    "FormatterConfigError",
    "Package",
    "SettingsError",
    "SyncMode",
    "SyncOutcome",
    "SyncReport",
    "SyncStatus",
    "TsrefsError",
    "WorkspaceListingError",
    "WorkspaceRootNotFoundError",
]
