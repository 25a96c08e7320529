"""Workspace enumeration and config probing."""
from .prober import probe, probe_all
from .reader import find_workspace_root, list_packages, parse_listing

__all__ = [
    "find_workspace_root",
    "list_packages",
    "parse_listing",
    "probe",
    "probe_all",
]
