"""
Status command for CLI.

Reports MongoDB and connection health.
"""

import sys

import click

from ..utils import echo_json, run_with_gateway


@click.command()
@click.pass_obj
def status(options: dict) -> None:
    """
    Check gateway health.

    Exits with status 1 when the gateway is not healthy.

    Examples:
        mdb-gateway status
    """
    report = run_with_gateway(options, lambda gateway: gateway.check_status())
    echo_json(report)

    if report.get("status") == "healthy":
        click.echo(click.style("✅ Gateway is healthy", fg="green"))
    else:
        click.echo(click.style(f"❌ Gateway is {report.get('status')}", fg="red"))
        sys.exit(1)
