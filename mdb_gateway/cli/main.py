"""
Command line entry point for MDB_GATEWAY.
"""

import logging

import click

from .. import __version__
from .commands.collections import collections
from .commands.status import status
from .commands.transfer import export, import_command

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@click.group()
@click.version_option(__version__, prog_name="mdb-gateway")
@click.option("--mongo-uri", default=None, help="MongoDB URI (defaults to $MONGO_URI)")
@click.option("--db-name", default=None, help="Database name (defaults to $DB_NAME)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.pass_context
def cli(ctx: click.Context, mongo_uri: str | None, db_name: str | None, log_level: str) -> None:
    """Multi-tenant MongoDB gateway tools."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"mongo_uri": mongo_uri, "db_name": db_name}


cli.add_command(status)
cli.add_command(collections)
cli.add_command(export)
cli.add_command(import_command)


if __name__ == "__main__":
    cli()
