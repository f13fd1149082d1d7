"""
Delete what the previous run published, without publishing anything.
"""

from __future__ import annotations

import asyncio

import click

from ...core.messages import load_messages
from ...publish.cleanup import DeleteOrchestrator
from ...publish.journal import JournalStore
from .common import configure_logging, console, handle_error, resolve_options


@click.command()
@click.argument("output_dir", type=click.Path(file_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config file")
@click.option("--verbose", is_flag=True, help="Enable verbose debugging output")
def clean(output_dir, config_path, verbose):
    """Remove the files recorded in OUTPUT_DIR's publish journal."""
    configure_logging(verbose)

    try:
        options = resolve_options(config_path)
        messages = load_messages(options.lang)
        store = JournalStore(options.journal_path(output_dir), messages)
        deleted = asyncio.run(DeleteOrchestrator(messages=messages).delete_previous(store))
    except Exception as e:
        handle_error(e, verbose)

    console.print(f"[green]✓[/green] {messages('DELETED_NUM_PREVIOUS_FILES', count=deleted)}")
