"""Terminal reporter for sync runs."""
from __future__ import annotations

import click
from colorama import Fore, Style, init as colorama_init

from tsrefs.core.models import SyncMode, SyncOutcome, SyncReport, SyncStatus

CHECK_FAILURE_MESSAGE = (
    "Project references are not in sync with dependencies.\n"
    'You can run "tsrefs write" to fix them.'
)
WRITE_CHANGED_MESSAGE = "Project references were synced with dependencies."
IN_SYNC_MESSAGE = "Project references are in sync with dependencies."

STATUS_LABELS = {
    SyncStatus.IN_SYNC: ("OK", Fore.GREEN),
    SyncStatus.OUT_OF_SYNC: ("DRIFT", Fore.RED),
    SyncStatus.WRITTEN: ("WROTE", Fore.YELLOW),
}


class TerminalReporter:
    """Human-readable reporter; per-file lines are only shown when verbose."""

    def __init__(self, *, use_color: bool = True, verbose: bool = False) -> None:
        self._use_color = use_color
        self._verbose = verbose
        if use_color:
            colorama_init()

    def report(self, report: SyncReport) -> int:
        """Print the outcome and return the exit code for the run."""

        if self._verbose:
            for outcome in (*report.packages, report.root):
                self._print_outcome(outcome)
            for name in report.skipped:
                click.echo(f"{'SKIP':<6} {name} (no config)")
        if report.mode is SyncMode.CHECK:
            if report.out_of_sync:
                click.echo(self._colored(CHECK_FAILURE_MESSAGE, Fore.RED), err=True)
                return 1
            click.echo(self._colored(IN_SYNC_MESSAGE, Fore.GREEN))
            return 0
        if report.changed:
            click.echo(self._colored(WRITE_CHANGED_MESSAGE, Fore.YELLOW))
        else:
            click.echo(self._colored(IN_SYNC_MESSAGE, Fore.GREEN))
        return 0

    def _print_outcome(self, outcome: SyncOutcome) -> None:
        label, color = STATUS_LABELS[outcome.status]
        click.echo(f"{self._colored(f'{label:<6}', color)} {outcome.label} ({outcome.path})")

    def _colored(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"
