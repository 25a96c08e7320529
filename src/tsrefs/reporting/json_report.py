"""JSON report output for CI consumers."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import click
from jsonschema import Draft7Validator

from tsrefs.core.models import SyncOutcome, SyncReport

_OUTCOME_SCHEMA = {
    "type": "object",
    "required": ["name", "path", "status"],
    "properties": {
        "name": {"type": "string"},
        "path": {"type": "string"},
        "status": {"enum": ["in-sync", "out-of-sync", "written"]},
    },
}

REPORT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "tsrefs report",
    "type": "object",
    "required": ["mode", "in_sync", "changed", "packages", "root", "skipped"],
    "properties": {
        "mode": {"enum": ["check", "write"]},
        "in_sync": {"type": "boolean"},
        "changed": {"type": "boolean"},
        "packages": {"type": "array", "items": _OUTCOME_SCHEMA},
        "root": _OUTCOME_SCHEMA,
        "skipped": {"type": "array", "items": {"type": "string"}},
    },
}


def build_payload(report: SyncReport) -> Dict[str, Any]:
    return {
        "mode": report.mode.value,
        "in_sync": not report.out_of_sync,
        "changed": report.changed,
        "packages": [_outcome(outcome) for outcome in report.packages],
        "root": _outcome(report.root),
        "skipped": list(report.skipped),
    }


def write_json_report(report: SyncReport, path: Optional[str] = None) -> None:
    payload = build_payload(report)
    Draft7Validator(REPORT_SCHEMA).validate(payload)
    text = json.dumps(payload, indent=2)
    if path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text + "\n", encoding="utf-8")
    else:
        click.echo(text)


def _outcome(outcome: SyncOutcome) -> Dict[str, str]:
    return {"name": outcome.label, "path": str(outcome.path), "status": outcome.status.value}
