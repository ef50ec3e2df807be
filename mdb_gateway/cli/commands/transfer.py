"""
Export and import commands for CLI.
"""

from pathlib import Path

import click

from ...constants import DEFAULT_EXPORT_FORMAT, SUPPORTED_EXPORT_FORMATS
from ..utils import echo_json, run_with_gateway


@click.command()
@click.argument("tenant_id")
@click.option("--type", "entity_type", default=None, help="Export a single entity type")
@click.option(
    "--format",
    "archive_format",
    type=click.Choice(SUPPORTED_EXPORT_FORMATS),
    default=DEFAULT_EXPORT_FORMAT,
    show_default=True,
    help="Format of each archive entry",
)
@click.option("--dedicated", is_flag=True, help="Tenant owns the whole database")
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Where to write the zip archive",
)
@click.pass_obj
def export(
    options: dict,
    tenant_id: str,
    entity_type: str | None,
    archive_format: str,
    dedicated: bool,
    output: Path,
) -> None:
    """
    Export a tenant's collections to a zip archive.

    TENANT_ID: Tenant identifier

    Examples:
        mdb-gateway export acme-5f0c6d1e2a3b4c5d6e7f8091-dev -o acme.zip
        mdb-gateway export acme-5f0c6d1e2a3b4c5d6e7f8091-dev --type orders --format csv -o o.zip
    """
    archive = run_with_gateway(
        options,
        lambda gateway: gateway.export(
            {
                "tenant_id": tenant_id,
                "entity_type": entity_type,
                "format": archive_format,
                "dedicated": dedicated,
            }
        ),
    )
    try:
        output.write_bytes(archive)
    except OSError as e:
        raise click.ClickException(f"Failed to write archive: {e}") from e

    click.echo(click.style(f"✅ Exported {len(archive)} bytes to '{output}'", fg="green"))


@click.command("import")
@click.argument("tenant_id")
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--dedicated", is_flag=True, help="Tenant owns the whole database")
@click.pass_obj
def import_command(
    options: dict, tenant_id: str, files: tuple[Path, ...], dedicated: bool
) -> None:
    """
    Import zip archives or .json/.bson/.csv files into a tenant.

    TENANT_ID: Tenant identifier

    FILES: Files to import; each entry's name is its entity type

    Examples:
        mdb-gateway import acme-5f0c6d1e2a3b4c5d6e7f8091-dev acme.zip
        mdb-gateway import acme-5f0c6d1e2a3b4c5d6e7f8091-dev orders.json users.csv
    """
    result = run_with_gateway(
        options,
        lambda gateway: gateway.import_data(
            {"tenant_id": tenant_id, "files": list(files), "dedicated": dedicated}
        ),
    )
    echo_json(result)
