"""Probe each package for a compiler configuration file."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable, List

from tsrefs.core.errors import ConfigParseError
from tsrefs.core.models import ConfigDescriptor, Package

logger = logging.getLogger(__name__)


async def probe(root: Path, package: Package, filename: str) -> ConfigDescriptor:
    candidate = root / package.location / filename
    if not await asyncio.to_thread(candidate.is_file):
        logger.debug("%s: no %s", package.name, filename)
        return ConfigDescriptor(package=package)
    config = parse_config(await asyncio.to_thread(read_raw, candidate), candidate)
    options = config.get("compilerOptions")
    is_composite = isinstance(options, dict) and bool(options.get("composite"))
    logger.debug("%s: %s composite=%s", package.name, candidate, is_composite)
    return ConfigDescriptor(package=package, path=candidate, is_composite=is_composite)


async def probe_all(root: Path, packages: Iterable[Package], filename: str) -> List[ConfigDescriptor]:
    """Probe every package concurrently; results follow ``packages`` order."""

    results = await asyncio.gather(*(probe(root, package, filename) for package in packages))
    return list(results)


def read_raw(path: Path) -> str:
    """Read text without newline translation so comparisons are byte exact."""

    try:
        with path.open(encoding="utf-8", newline="") as handle:
            return handle.read()
    except UnicodeDecodeError as exc:
        raise ConfigParseError(path, f"not valid UTF-8: {exc}") from exc


def write_raw(path: Path, text: str) -> None:
    # newline="" keeps the rendered line endings byte for byte.
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(text)


def parse_config(text: str, path: Path) -> dict:
    try:
        config = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(path, str(exc)) from exc
    if not isinstance(config, dict):
        raise ConfigParseError(path, "top-level value must be a JSON object")
    return config
