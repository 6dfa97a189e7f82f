"""Options and helpers shared by several commands."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from gitpost_core.errors import HostingError, MissingCredentialError
from gitpost_core.hosting.factory import SERVICES, get_client

console = Console()


def _split_repo(ctx, param, value: str | None):
    if value is None:
        return None
    owner, _, name = value.rpartition("/")
    if not owner or not name:
        raise click.BadParameter("expected owner/name")
    return owner, name


repo_option = click.option(
    "--repo",
    required=True,
    callback=_split_repo,
    help="Repository in owner/name format (GitLab groups: group/subgroup/name).",
)

service_option = click.option(
    "--service",
    type=click.Choice(SERVICES),
    default=None,
    help="Hosting provider. Overrides config file.",
)


def build_client(ctx: click.Context, service: str | None, repo: tuple[str, str], branch: str | None = None, **kwargs):
    """Build a hosting client from the group config; a missing token becomes a UsageError."""
    config = ctx.obj["config"]
    service = service or config["service"]
    owner, name = repo
    try:
        return get_client(service, owner, name, config, branch=branch, **kwargs)
    except MissingCredentialError:
        env = "GITHUB_TOKEN" if service == "github" else "GITLAB_TOKEN"
        raise click.UsageError(f"No {service} token found. Set {env} first.")


def fail(ctx: click.Context, e: HostingError) -> None:
    """Report a hosting failure and exit non-zero."""
    status = f" (status {e.status})" if e.status else ""
    console.print(f"[red]{e.code}{status}: {escape(e.message)}[/red]")
    ctx.exit(1)
