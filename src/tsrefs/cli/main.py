"""CLI entry point for tsrefs."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import click

from tsrefs import __version__, configure_logging
from tsrefs.core.errors import TsrefsError
from tsrefs.core.models import SyncMode
from tsrefs.reporting import TerminalReporter, write_json_report
from tsrefs.reporting.terminal import CHECK_FAILURE_MESSAGE
from tsrefs.settings import load_settings
from tsrefs.sync import run
from tsrefs.workspace import find_workspace_root

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class FatalError(click.ClickException):
    """Run aborted; exit code 2 keeps it apart from check drift (1)."""

    exit_code = 2


class CliState:
    """Holds global CLI state."""

    def __init__(self, verbose: bool, root: Optional[str]) -> None:
        self.verbose = verbose
        self.root = root


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"tsrefs {__version__}")
    raise click.exceptions.Exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    help="Workspace root (defaults to the nearest directory with package.json).",
)
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the tsrefs version and exit.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, root: Optional[str]) -> None:
    """Keep tsconfig project references in sync with workspace dependencies."""

    configure_logging(verbose)
    ctx.obj = CliState(verbose=verbose, root=root)


def _sync_options(func: Callable) -> Callable:
    func = click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")(func)
    func = click.option("--report-path", type=str, help="When --report json, write to this path.")(func)
    func = click.option(
        "--report",
        "report_format",
        type=click.Choice(["terminal", "json"]),
        default="terminal",
        show_default=True,
        help="Report format (terminal by default).",
    )(func)
    func = click.option("--tsconfig", "tsconfig_name", type=str, help="Config file name to sync in each package.")(func)
    return func


@cli.command()
@_sync_options
@click.pass_obj
def check(
    state: CliState,
    tsconfig_name: Optional[str],
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Check that the tsconfig file project references are synced with dependencies."""

    _execute(state, SyncMode.CHECK, tsconfig_name, report_format, report_path, no_color)


@cli.command()
@_sync_options
@click.pass_obj
def write(
    state: CliState,
    tsconfig_name: Optional[str],
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Write the dependencies to tsconfig file project references."""

    _execute(state, SyncMode.WRITE, tsconfig_name, report_format, report_path, no_color)


def _execute(
    state: CliState,
    mode: SyncMode,
    tsconfig_name: Optional[str],
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    try:
        root = Path(state.root).resolve() if state.root else find_workspace_root(Path.cwd())
        settings = load_settings(root, tsconfig_name=tsconfig_name)
        report = run(mode, settings=settings)
    except (TsrefsError, OSError) as exc:
        logger.debug("Run aborted", exc_info=True)
        raise FatalError(str(exc)) from exc
    if report_format == "json":
        write_json_report(report, report_path)
        exit_code = 1 if mode is SyncMode.CHECK and report.out_of_sync else 0
        if exit_code:
            click.echo(CHECK_FAILURE_MESSAGE, err=True)
    else:
        reporter = TerminalReporter(use_color=not no_color, verbose=state.verbose)
        exit_code = reporter.report(report)
    raise click.exceptions.Exit(exit_code)


def main(argv: Optional[list[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=argv, prog_name="tsrefs", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click may raise exit code
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
