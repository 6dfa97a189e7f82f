"""connect command: accept the invitation to collaborate on a site repository."""

from __future__ import annotations

import click
from rich.console import Console

from gitpost_cli.options import build_client, fail, repo_option, service_option
from gitpost_core.connect import connect_repository
from gitpost_core.errors import HostingError

console = Console()


@click.command("connect")
@repo_option
@service_option
@click.pass_context
def connect_cmd(ctx, repo: tuple[str, str], service: str | None):
    """Accept a pending collaboration invitation for a repository.

    The site owner first invites the bot account as a collaborator; this
    command accepts that invitation so the bot can push entries.
    """
    client = build_client(ctx, service, repo)
    owner, name = repo
    try:
        connect_repository(client, owner, name)
    except HostingError as e:
        fail(ctx, e)
        return
    console.print("[green]OK![/green]")
