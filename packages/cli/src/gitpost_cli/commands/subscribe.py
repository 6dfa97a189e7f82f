"""subscribe command: add an email address to a thread's mailing list."""

from __future__ import annotations

import click
from rich.console import Console

from gitpost_cli.options import repo_option
from gitpost_core.models import Thread
from gitpost_notify.base import NotificationError
from gitpost_notify.noop import NoOpMailAgent

console = Console()


@click.command("subscribe")
@repo_option
@click.option("--parent", required=True, help="Thread identifier (e.g. the post slug).")
@click.argument("email")
@click.pass_context
def subscribe_cmd(ctx, repo: tuple[str, str], parent: str, email: str):
    """Subscribe EMAIL to replies on a thread.

    Safe to repeat: the thread's list is created once and an existing
    member is left as is.
    """
    registry = ctx.obj["registry"]
    if isinstance(registry.agent, NoOpMailAgent):
        raise click.UsageError("No mail agent configured. Set MAILGUN_API_KEY and mail_domain in .gitpost.yml.")

    owner, name = repo
    thread = Thread(owner, name, parent)
    try:
        registry.subscribe(thread, email)
    except NotificationError as e:
        console.print(f"[red]Could not subscribe {email}: {e}[/red]")
        ctx.exit(1)
    console.print(f"[green]Subscribed {email} to {registry.list_address(thread)}[/green]")
