"""Render configuration objects as canonical JSON text."""
from __future__ import annotations

import json
import unicodedata
from pathlib import Path
from typing import Any, List, Optional

from .style import FormatStyle, resolve_style


def render(obj: Any, reference_path: Path, style: Optional[FormatStyle] = None) -> str:
    """Render ``obj`` using the style resolved for ``reference_path``.

    The object is serialized with two-space indentation first and the
    result is reprinted, so the output only depends on the JSON value and
    the style. Non-empty objects always break one key per line. Arrays of
    scalars stay on one line when they fit ``printWidth`` (measured in
    display columns); arrays holding objects always break, as do arrays of
    two or more same-kind containers that each hold two or more members.
    """
    if style is None:
        style = resolve_style(reference_path)
    value = json.loads(json.dumps(obj, indent=2, ensure_ascii=False))
    text = _JsonPrinter(style).print(value, level=0, column=0, trailing=0)
    return (text + "\n").replace("\n", style.newline)


class _JsonPrinter:
    def __init__(self, style: FormatStyle) -> None:
        self.style = style

    def print(self, value: Any, *, level: int, column: int, trailing: int) -> str:
        if isinstance(value, dict):
            return self._object(value, level)
        if isinstance(value, list):
            return self._array(value, level, column, trailing)
        return _scalar(value)

    def _object(self, value: dict, level: int) -> str:
        if not value:
            return "{}"
        inner = self.style.indent(level + 1)
        column = self.style.indent_width(level + 1)
        lines: List[str] = []
        last = len(value) - 1
        for index, (key, item) in enumerate(value.items()):
            key_text = f"{_scalar(key)}: "
            trailing = 0 if index == last else 1
            printed = self.print(item, level=level + 1, column=column + _width(key_text), trailing=trailing)
            lines.append(f"{inner}{key_text}{printed}")
        return "{\n" + ",\n".join(lines) + "\n" + self.style.indent(level) + "}"

    def _array(self, value: list, level: int, column: int, trailing: int) -> str:
        if not value:
            return "[]"
        flat = None if _must_break(value) else _flat(value)
        if flat is not None and column + _width(flat) + trailing <= self.style.print_width:
            return flat
        inner = self.style.indent(level + 1)
        if _all_numbers(value):
            return "[\n" + self._fill(value, level + 1) + "\n" + self.style.indent(level) + "]"
        column = self.style.indent_width(level + 1)
        last = len(value) - 1
        lines = [
            inner + self.print(item, level=level + 1, column=column, trailing=0 if index == last else 1)
            for index, item in enumerate(value)
        ]
        return "[\n" + ",\n".join(lines) + "\n" + self.style.indent(level) + "]"

    def _fill(self, value: list, level: int) -> str:
        # Numeric arrays are packed greedily, several items per line.
        width = self.style.print_width - self.style.indent_width(level)
        rows: List[List[str]] = [[]]
        used = 0
        last = len(value) - 1
        for index, item in enumerate(value):
            text = _scalar(item) + ("," if index != last else "")
            needed = _width(text) if not rows[-1] else used + 1 + _width(text)
            if rows[-1] and needed > width:
                rows.append([])
                needed = _width(text)
            rows[-1].append(text)
            used = needed
        inner = self.style.indent(level)
        return "\n".join(inner + " ".join(row) for row in rows)


def _scalar(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _flat(value: Any) -> Optional[str]:
    """Single-line rendering, or None when the value must break."""

    if isinstance(value, dict):
        return "{}" if not value else None
    if isinstance(value, list):
        parts = []
        for item in value:
            text = _flat(item)
            if text is None:
                return None
            parts.append(text)
        return "[" + ", ".join(parts) + "]"
    return _scalar(value)


def _all_numbers(value: list) -> bool:
    return all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in value)


def _must_break(value: list) -> bool:
    """Arrays of two or more same-kind containers with two or more members each always break."""

    if len(value) < 2:
        return False
    kind = type(value[0])
    if kind not in (dict, list):
        return False
    return all(type(item) is kind and len(item) > 1 for item in value)


def _width(text: str) -> int:
    """Display width: East Asian wide characters count 2, combining marks 0."""

    width = 0
    for char in text:
        if unicodedata.combining(char):
            continue
        width += 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1
    return width
