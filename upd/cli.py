"""CLI entry point: upd.

    upd                      # upgrade ./package.json to latest stable versions
    upd -n -a                # dry run, show every dependency
    upd -g '!@types/*'       # greatest versions, everything except @types
"""

from __future__ import annotations

import asyncio
import sys

import click

from upd import __version__
from upd.config import DEFAULT_CONCURRENCY, UpdateConfig
from upd.core.logging import setup_logging
from upd.errors import UpdError
from upd.manifest.models import EntryState
from upd.runner import ReportRow, UpdateReport, run

_COLUMNS = (("MODULE NAME", 37), ("VERSION OLD", 14), ("VERSION NEW", 14), ("STATE", 9))


def _cell(text: str, width: int) -> str:
    if len(text) > width - 2:
        text = text[: width - 3] + "…"
    return " " + text.ljust(width - 1)


def _format_row(row: ReportRow) -> str:
    updated = row.state is EntryState.UPDATED
    cells = [
        _cell(row.name, _COLUMNS[0][1]),
        _cell(row.old_specifier, _COLUMNS[1][1]),
        _cell(row.new_specifier, _COLUMNS[2][1]),
        _cell(row.state.value, _COLUMNS[3][1]),
    ]
    if updated:
        cells[1] = click.style(cells[1], fg="red")
        cells[2] = click.style(cells[2], fg="green")
        cells[3] = click.style(cells[3], fg="green")
    else:
        cells = [click.style(c, fg="bright_black") for c in cells]
    return "│".join(cells)


def format_report(report: UpdateReport, show_all: bool) -> str:
    """Render *report* as a plain table (ANSI styling stripped by the caller if needed)."""
    if not (report.updates or show_all):
        return click.style("ALL PACKAGE DEPENDENCIES UP-TO-DATE", fg="green")
    header = "│".join(click.style(_cell(title, width), bold=True) for title, width in _COLUMNS)
    rule = "─" * (sum(width for _, width in _COLUMNS) + len(_COLUMNS) - 1)
    lines = [header, rule]
    lines.extend(_format_row(row) for row in report.rows)
    return "\n".join(lines)


@click.command()
@click.option("-q", "--quiet", is_flag=True, help="Do not output upgrade information")
@click.option("-n", "--nop", is_flag=True, help="Dry run: do not modify the package configuration file")
@click.option("-C", "--no-color", "no_color", is_flag=True, help="Do not use any colors in output")
@click.option(
    "-f",
    "--file",
    default="-",
    show_default=True,
    help='Package configuration to use ("-" means package.json)',
)
@click.option("-g", "--greatest", is_flag=True, help="Use greatest version instead of latest stable one")
@click.option("-a", "--all", "show_all", is_flag=True, help="Show all packages instead of just updated ones")
@click.option(
    "-c",
    "--concurrency",
    type=int,
    default=DEFAULT_CONCURRENCY,
    show_default=True,
    help="Number of concurrent network connections to the registry",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(__version__, "-V", "--version", prog_name="upd")
@click.argument("patterns", nargs=-1)
def main(
    quiet: bool,
    nop: bool,
    no_color: bool,
    file: str,
    greatest: bool,
    show_all: bool,
    concurrency: int,
    verbose: bool,
    patterns: tuple[str, ...],
) -> None:
    """Upgrade npm package dependencies in package.json, preserving formatting."""
    setup_logging("DEBUG" if verbose else None)
    try:
        config = UpdateConfig.build(
            file=file,
            patterns=list(patterns),
            concurrency=concurrency,
            mode="greatest" if greatest else "latest",
            dry_run=nop,
            show_all=show_all,
        )
        report = asyncio.run(run(config))
    except UpdError as exc:
        click.echo(click.style("ERROR:", fg="red") + f" {exc}", err=True, color=False if no_color else None)
        sys.exit(1)

    if not quiet:
        click.echo(format_report(report, show_all), color=False if no_color else None)


if __name__ == "__main__":
    main()
