"""Read the package list from the workspace manager."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Sequence

from jsonschema import Draft7Validator

from tsrefs.core.errors import WorkspaceListingError, WorkspaceRootNotFoundError
from tsrefs.core.models import Package

logger = logging.getLogger(__name__)

ROOT_LOCATION = "."

RECORD_SCHEMA = {
    "type": "object",
    "required": ["name", "location"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "location": {"type": "string", "minLength": 1},
        "workspaceDependencies": {"type": "array", "items": {"type": "string"}},
    },
}
_validator = Draft7Validator(RECORD_SCHEMA)


def find_workspace_root(start: Path) -> Path:
    """Return the nearest directory at or above ``start`` holding package.json."""

    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / "package.json").is_file():
            return candidate
    raise WorkspaceRootNotFoundError(start)


async def list_packages(root: Path, command: Sequence[str]) -> Dict[str, Package]:
    """Run the listing command once in ``root`` and parse its output."""

    logger.debug("Listing workspaces with: %s", " ".join(command))
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(root),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise WorkspaceListingError(f"Could not run workspace listing command '{command[0]}': {exc}") from exc
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise WorkspaceListingError(
            "Workspace listing command failed",
            returncode=proc.returncode,
            stderr=stderr.decode("utf-8", errors="replace").strip(),
        )
    try:
        text = stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise WorkspaceListingError(f"Workspace listing output is not valid UTF-8: {exc}") from exc
    return parse_listing(text)


def parse_listing(text: str) -> Dict[str, Package]:
    """Parse one JSON record per line into packages keyed by name.

    The workspace root itself (location ``.``) is left out; its config is
    handled separately as the reference hub.
    """
    packages: Dict[str, Package] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise WorkspaceListingError(f"Invalid JSON on line {lineno} of workspace listing: {exc}") from exc
        errors = sorted(_validator.iter_errors(record), key=lambda e: list(e.path))
        if errors:
            messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'record'}: {err.message}" for err in errors)
            raise WorkspaceListingError(f"Invalid workspace record on line {lineno}: {messages}")
        location = _normalize_location(record["location"])
        if location == ROOT_LOCATION:
            continue
        packages[record["name"]] = Package(
            name=record["name"],
            location=location,
            dependencies=tuple(record.get("workspaceDependencies") or ()),
        )
    logger.debug("Found %d workspace package(s)", len(packages))
    return packages


def _normalize_location(location: str) -> str:
    text = location.replace("\\", "/").rstrip("/")
    while text.startswith("./"):
        text = text[2:]
    return text or ROOT_LOCATION
