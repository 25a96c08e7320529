"""Exception hierarchy for tsrefs runs."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class TsrefsError(Exception):
    """Base class for every fatal tsrefs failure."""


class WorkspaceRootNotFoundError(TsrefsError):
    def __init__(self, start: Path) -> None:
        super().__init__(f"Could not find workspace root (no package.json above {start}).")
        self.start = start


class WorkspaceListingError(TsrefsError):
    """The workspace listing command failed or printed unusable output."""

    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = "") -> None:
        detail = message
        if returncode is not None:
            detail = f"{detail} (exit code {returncode})"
        if stderr:
            detail = f"{detail}: {stderr}"
        super().__init__(detail)
        self.returncode = returncode
        self.stderr = stderr


class ConfigParseError(TsrefsError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not parse {path}: {reason}")
        self.path = path


class FormatterConfigError(TsrefsError):
    """A Prettier configuration file is unreadable or holds invalid options."""


class SettingsError(TsrefsError):
    """The tsrefs settings file is invalid."""
