"""
Collections command for CLI.

Lists a tenant's collections with their size and document count.
"""

import click

from ..utils import echo_json, run_with_gateway


@click.command()
@click.argument("tenant_id")
@click.option("--dedicated", is_flag=True, help="Tenant owns the whole database")
@click.pass_obj
def collections(options: dict, tenant_id: str, dedicated: bool) -> None:
    """
    List the collections of a tenant.

    TENANT_ID: Tenant identifier (database name in dedicated mode)

    Examples:
        mdb-gateway collections acme-5f0c6d1e2a3b4c5d6e7f8091-dev
        mdb-gateway collections acme --dedicated
    """
    descriptors = run_with_gateway(
        options,
        lambda gateway: gateway.list({"tenant_id": tenant_id, "dedicated": dedicated}),
    )
    echo_json(descriptors)
