"""
Check the route configuration without touching any backend.
"""

from __future__ import annotations

import asyncio
import json

import click
from rich.table import Table

from ...core.messages import load_messages
from ...publish.validator import RouteValidator, accept
from .common import configure_logging, console, handle_error, prompt_confirm, resolve_options


def describe_target(route) -> str:
    if route.backend.is_directory_oriented:
        return f"{route.host}:{route.dest_path}"
    return route.bucket or ""


@click.command()
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to config file")
@click.option("--yes", "-y", is_flag=True, help="Accept duplicate match patterns without asking.")
@click.option("--json", "as_json", is_flag=True, help="Machine-readable JSON output")
@click.option("--verbose", is_flag=True, help="Enable verbose debugging output")
def validate(config_path, yes, as_json, verbose):
    """Validate the configured routes."""
    configure_logging(verbose)

    try:
        options = resolve_options(config_path)
        validator = RouteValidator(load_messages(options.lang), accept if yes else prompt_confirm)
        routes = asyncio.run(validator.validate_all(options.cdn))
    except Exception as e:
        handle_error(e, verbose)

    routes = routes if isinstance(routes, list) else [routes]

    if as_json:
        click.echo(json.dumps([
            {
                "type": route.backend.value,
                "target": describe_target(route),
                "test": route.pattern_key,
            }
            for route in routes
        ], indent=2))
        return

    table = Table(title="Routes")
    table.add_column("#", justify="right")
    table.add_column("Backend")
    table.add_column("Target")
    table.add_column("Pattern")

    for index, route in enumerate(routes):
        table.add_row(str(index), route.display_name, describe_target(route), route.pattern_key or "(default)")

    console.print(table)
    console.print(f"[green]✓[/green] {len(routes)} route(s) valid")
