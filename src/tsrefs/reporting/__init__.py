"""Reporting exports."""
from .json_report import build_payload, write_json_report
from .terminal import TerminalReporter

__all__ = [
    "TerminalReporter",
    "build_payload",
    "write_json_report",
]
