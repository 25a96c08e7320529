"""Settings resolution: CLI overrides, environment, ``tsrefs.yaml`` and defaults."""
from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import yaml
from jsonschema import Draft7Validator

from tsrefs.core.errors import SettingsError

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "tsrefs.yaml"
DEFAULT_TSCONFIG = "tsconfig.json"
DEFAULT_WORKSPACE_COMMAND = ("yarn", "workspaces", "list", "--json", "--verbose")

ENV_TSCONFIG = "TSREFS_TSCONFIG"
ENV_ROOT_TSCONFIG = "TSREFS_ROOT_TSCONFIG"
ENV_WORKSPACE_COMMAND = "TSREFS_WORKSPACE_COMMAND"

SETTINGS_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "tsconfig": {"type": "string", "minLength": 1},
        "root_tsconfig": {"type": "string", "minLength": 1},
        "workspace_command": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "minItems": 1, "items": {"type": "string"}},
            ]
        },
    },
}
_validator = Draft7Validator(SETTINGS_SCHEMA)


@dataclass(frozen=True)
class Settings:
    root: Optional[Path] = None
    tsconfig_name: str = DEFAULT_TSCONFIG
    root_tsconfig_name: str = DEFAULT_TSCONFIG
    workspace_command: Sequence[str] = DEFAULT_WORKSPACE_COMMAND


def load_settings(
    root: Path,
    *,
    tsconfig_name: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Resolve settings for a workspace rooted at ``root``.

    Precedence is explicit argument, then environment, then the
    ``tsrefs.yaml`` file at the workspace root, then defaults.
    """
    env = os.environ if environ is None else environ
    raw = _read_settings_file(root / SETTINGS_FILENAME)

    name = tsconfig_name or env.get(ENV_TSCONFIG) or raw.get("tsconfig") or DEFAULT_TSCONFIG
    root_name = env.get(ENV_ROOT_TSCONFIG) or raw.get("root_tsconfig") or name
    command_raw: Any = env.get(ENV_WORKSPACE_COMMAND) or raw.get("workspace_command")
    command = _normalize_command(command_raw) if command_raw else DEFAULT_WORKSPACE_COMMAND
    return Settings(
        root=root,
        tsconfig_name=name,
        root_tsconfig_name=root_name,
        workspace_command=command,
    )


def _read_settings_file(path: Path) -> Mapping[str, Any]:
    if not path.is_file():
        return {}
    logger.debug("Loading settings from %s", path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except UnicodeDecodeError as exc:
        raise SettingsError(f"{path}: not valid UTF-8: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SettingsError(f"{path}: invalid YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise SettingsError(f"{path}: settings file must contain a mapping at the top level")
    errors = sorted(_validator.iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise SettingsError(f"{path}: settings validation failed: {messages}")
    return raw


def _normalize_command(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        argv = tuple(shlex.split(raw))
    elif isinstance(raw, (list, tuple)):
        argv = tuple(str(part) for part in raw)
    else:
        raise SettingsError("workspace_command must be a string or list")
    if not argv:
        raise SettingsError("workspace_command cannot be empty")
    return argv
