"""Resolve Prettier-compatible formatting options for a file."""
from __future__ import annotations

import fnmatch
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import yaml
from jsonschema import Draft7Validator

from tsrefs.core.errors import FormatterConfigError

logger = logging.getLogger(__name__)

# Prettier's lookup order within a single directory.
CONFIG_FILENAMES = (
    "package.json",
    "package.yaml",
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.yaml",
    ".prettierrc.yml",
    ".prettierrc.json5",
    ".prettierrc.js",
    "prettier.config.js",
    ".prettierrc.ts",
    "prettier.config.ts",
    ".prettierrc.mjs",
    "prettier.config.mjs",
    ".prettierrc.mts",
    "prettier.config.mts",
    ".prettierrc.cjs",
    "prettier.config.cjs",
    ".prettierrc.cts",
    "prettier.config.cts",
    ".prettierrc.toml",
)
# Formats that need a JavaScript, JSON5 or TOML loader.
UNSUPPORTED_FILENAMES = frozenset(CONFIG_FILENAMES[6:])
MANIFEST_FILENAMES = ("package.json", "package.yaml")

LINE_ENDINGS = {"lf": "\n", "crlf": "\r\n", "cr": "\r", "auto": "\n"}

OPTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "printWidth": {"type": "integer", "minimum": 1},
        "tabWidth": {"type": "integer", "minimum": 0},
        "useTabs": {"type": "boolean"},
        "endOfLine": {"enum": sorted(LINE_ENDINGS)},
        "overrides": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["files"],
                "properties": {
                    "files": {"type": ["string", "array"], "items": {"type": "string"}},
                    "excludeFiles": {"type": ["string", "array"], "items": {"type": "string"}},
                    "options": {"type": "object"},
                },
            },
        },
    },
}
_validator = Draft7Validator(OPTIONS_SCHEMA)


@dataclass(frozen=True)
class FormatStyle:
    print_width: int = 80
    tab_width: int = 2
    use_tabs: bool = False
    end_of_line: str = "lf"
    source: Optional[Path] = None

    @property
    def newline(self) -> str:
        return LINE_ENDINGS[self.end_of_line]

    def indent(self, level: int) -> str:
        if self.use_tabs:
            return "\t" * level
        return " " * (self.tab_width * level)

    def indent_width(self, level: int) -> int:
        return self.tab_width * level


def resolve_style(path: Path) -> FormatStyle:
    """Find the nearest Prettier config above ``path`` and build a style."""

    path = Path(path).resolve()
    found = find_config(path.parent)
    if found is None:
        return FormatStyle()
    config_path, options = found
    logger.debug("Using formatter config %s for %s", config_path, path)
    merged = dict(options)
    overrides = merged.pop("overrides", None) or []
    relative = _relative_posix(path, config_path.parent)
    for override in overrides:
        if _override_matches(override, relative):
            _validate(override.get("options") or {}, config_path)
            merged.update(override.get("options") or {})
    return FormatStyle(
        print_width=merged.get("printWidth", 80),
        tab_width=merged.get("tabWidth", 2),
        use_tabs=merged.get("useTabs", False),
        end_of_line=merged.get("endOfLine", "lf"),
        source=config_path,
    )


def find_config(start: Path) -> Optional[Tuple[Path, Mapping[str, Any]]]:
    for directory in (start, *start.parents):
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if not candidate.is_file():
                continue
            if filename in UNSUPPORTED_FILENAMES:
                raise FormatterConfigError(
                    f"{candidate}: this Prettier config format is not supported; "
                    "use .prettierrc (JSON or YAML) or a package.json \"prettier\" key"
                )
            options = _load_options(candidate)
            if options is not None:
                return candidate, options
    return None


def _load_options(path: Path) -> Optional[Dict[str, Any]]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FormatterConfigError(f"Could not read {path}: {exc}") from exc
    if path.name in MANIFEST_FILENAMES:
        try:
            manifest = json.loads(text) if path.name == "package.json" else yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise FormatterConfigError(f"Could not parse {path}: {exc}") from exc
        if not isinstance(manifest, dict) or "prettier" not in manifest:
            return None
        options = manifest["prettier"]
        if isinstance(options, str):
            raise FormatterConfigError(
                f"{path}: shared Prettier configs ('{options}') are not supported; inline the options"
            )
    else:
        # YAML is a superset of JSON, which covers every accepted .prettierrc flavour.
        try:
            options = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise FormatterConfigError(f"Could not parse {path}: {exc}") from exc
        if options is None:
            options = {}
    if not isinstance(options, dict):
        raise FormatterConfigError(f"{path}: Prettier options must be a mapping")
    _validate(options, path)
    return options


def _validate(options: Mapping[str, Any], path: Path) -> None:
    errors = sorted(_validator.iter_errors(dict(options)), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
        raise FormatterConfigError(f"{path}: invalid Prettier options: {messages}")


def _override_matches(override: Mapping[str, Any], relative: str) -> bool:
    if not _matches_any(_as_patterns(override.get("files")), relative):
        return False
    return not _matches_any(_as_patterns(override.get("excludeFiles")), relative)


def _as_patterns(raw: Any) -> Sequence[str]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return (raw,)
    return tuple(str(item) for item in raw)


def _matches_any(patterns: Sequence[str], relative: str) -> bool:
    basename = relative.rsplit("/", 1)[-1]
    for pattern in patterns:
        # Patterns without a slash match on the basename, like Prettier's matchBase.
        target = relative if "/" in pattern else basename
        if fnmatch.fnmatchcase(target, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(relative, pattern[3:]):
            return True
    return False


def _relative_posix(path: Path, base: Path) -> str:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return path.name
