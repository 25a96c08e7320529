"""Formatter adapter: style resolution and JSON rendering."""
from .render import render
from .style import FormatStyle, resolve_style

__all__ = [
    "FormatStyle",
    "render",
    "resolve_style",
]
