"""
BundlePush CLI entry point.
"""

import click

from .commands.clean import clean
from .commands.publish import publish
from .commands.validate import validate


@click.group()
@click.version_option(version="0.1.0", prog_name="bundlepush")
def cli():
    """
    BundlePush - publish build output to CDN and object storage.

    Cleans up the previous release from its publish journal.
    """
    pass


cli.add_command(publish)
cli.add_command(clean)
cli.add_command(validate)


if __name__ == "__main__":
    cli()
