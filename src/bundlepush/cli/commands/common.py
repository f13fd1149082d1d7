"""
Shared plumbing for the command line trigger.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import traceback
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from ...core.errors import BundlePushError, ConfigurationError, ExitCode
from ...storage.config import PublishOptions, find_config, load_options

console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose, markup=False)],
        force=True,
    )


def resolve_options(config_path: Optional[str]) -> PublishOptions:
    """
    Raises:
        ConfigurationError when no configuration can be found or parsed.
    """
    path = Path(config_path) if config_path else find_config()
    if path is None:
        raise ConfigurationError(
            "No configuration file found (bundlepush.yaml, bundlepush.yml or bundlepush.json)."
        )
    return load_options(path)


def prompt_confirm(question: str):
    """Interactive duplicate-pattern confirmation, off the event loop."""
    return asyncio.to_thread(click.confirm, question, default=False)


def handle_error(exc: Exception, debug: bool) -> None:
    if isinstance(exc, ConfigurationError):
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(ExitCode.CONFIGURATION_ERROR)

    if isinstance(exc, BundlePushError):
        console.print(f"[red]{exc.__class__.__name__}:[/red] {exc}")
        sys.exit(exc.exit_code)

    if debug:
        console.print("[red]Unexpected error:[/red]")
        traceback.print_exc()
    else:
        console.print(f"[red]Unexpected system error:[/red] {exc}")
        console.print("Run with --verbose for traceback.")

    sys.exit(ExitCode.INTERNAL_ERROR)
