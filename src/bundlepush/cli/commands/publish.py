"""
Publish a build output directory to the configured routes.
"""

from __future__ import annotations

import sys

import click
from rich.table import Table

from ...core.errors import ExitCode
from ...core.types import PublishReport
from ...publish.publisher import BundlePublisher, collect_assets
from ...publish.validator import accept
from .common import configure_logging, console, handle_error, prompt_confirm, resolve_options


def render_report(report: PublishReport) -> None:
    table = Table(title="Publish summary", show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")

    counters = report.counters
    table.add_row("Status", counters.status.value)
    table.add_row("Attempted", str(counters.attempted))
    table.add_row("[green]Succeeded[/green]", str(counters.succeeded))
    table.add_row("[red]Failed[/red]", str(counters.failed))
    if report.deleted_previous is not None:
        table.add_row("Deleted previous", str(report.deleted_previous))
    if report.journal_written:
        table.add_row("Journal", str(report.journal_path))

    console.print(table)


@click.command()
@click.argument("output_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config file")
@click.option("--yes", "-y", is_flag=True, help="Accept duplicate match patterns without asking.")
@click.option("--delete-previous", is_flag=True, default=None, help="Delete files of the previous run first.")
@click.option("--delete-output", is_flag=True, default=None, help="Remove local files once uploaded.")
@click.option("--verbose", is_flag=True, help="Enable verbose debugging output")
def publish(output_dir, config_path, yes, delete_previous, delete_output, verbose):
    """Upload OUTPUT_DIR to every matching route."""
    configure_logging(verbose)

    try:
        options = resolve_options(config_path)
    except Exception as e:
        handle_error(e, verbose)

    overrides = {}
    if delete_previous:
        overrides["delete_previous"] = True
    if delete_output:
        overrides["delete_output"] = True
    if overrides:
        options = options.replace(**overrides)

    publisher = BundlePublisher(options, confirm=accept if yes else prompt_confirm)
    journal_path = options.journal_path(output_dir)
    assets = collect_assets(output_dir, exclude=[journal_path])

    report = publisher.run(assets, output_dir)

    if report.error is not None:
        handle_error(report.error, verbose)

    render_report(report)

    if report.counters.failed:
        sys.exit(ExitCode.UPLOAD_ERROR)
