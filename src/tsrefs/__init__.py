"""tsrefs package initialization."""
from __future__ import annotations

import logging

from .version import __version__

__all__ = [
    "__version__",
    "configure_logging",
]


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging once; ``verbose`` raises tsrefs to DEBUG."""

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.WARNING,
    )
    logging.getLogger("tsrefs").setLevel(logging.DEBUG if verbose else logging.WARNING)
