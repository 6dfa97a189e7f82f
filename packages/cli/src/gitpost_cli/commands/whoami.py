from __future__ import annotations

import click
from rich.console import Console

from gitpost_cli.options import build_client, fail, service_option
from gitpost_core.errors import HostingError

console = Console()


@click.command("whoami")
@service_option
@click.pass_context
def whoami_cmd(ctx, service: str | None):
    """Show the account the configured token acts as."""
    # The identity endpoints are not repository scoped; any owner/name will do.
    client = build_client(ctx, service, ("-", "-"))
    try:
        identity = client.get_current_user()
    except HostingError as e:
        fail(ctx, e)
        return
    console.print(f"[bold]{identity.login}[/bold] on {identity.service}")
    if identity.name:
        console.print(f"  Name:  {identity.name}")
    if identity.email:
        console.print(f"  Email: {identity.email}")
