"""entry command: persist one submission through the moderation coordinator."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from gitpost_cli.options import build_client, fail, repo_option, service_option
from gitpost_core.errors import HostingError
from gitpost_core.models import Committed, Entry, Thread
from gitpost_core.moderation import ModerationCoordinator
from gitpost_core.utils.document import parse_document, serialize_fields
from gitpost_notify.base import NotificationError

console = Console()


def _load_fields(data_path: str | None, field_pairs: tuple[str, ...]) -> dict:
    fields: dict = {}
    if data_path:
        parsed = parse_document(Path(data_path).read_text(encoding="utf-8"), data_path)
        if not isinstance(parsed, dict):
            raise click.BadParameter("data file must hold a mapping of field names to values", param_hint="--data")
        fields.update(parsed)
    for pair in field_pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got {pair!r}", param_hint="--field")
        fields[name] = value
    return fields


@click.command("entry")
@repo_option
@service_option
@click.option("--path", "file_path", required=True, help="Path of the entry file inside the repository.")
@click.option("--branch", default=None, help="Target branch. Overrides config file.")
@click.option("--data", "data_path", type=click.Path(exists=True, dir_okay=False), help="YAML/JSON file of fields.")
@click.option("--field", "field_pairs", multiple=True, help="A field as name=value. Repeatable.")
@click.option("--format", "fmt", type=click.Choice(["yml", "json"]), default=None, help="Entry file format.")
@click.option("--moderate/--no-moderate", default=None, help="Open a review instead of committing directly.")
@click.option("--parent", default=None, help="Thread identifier (e.g. the post slug) for notifications.")
@click.option("--origin", default=None, help="URL of the page the entry was submitted from.")
@click.option("--subscribe", "subscriber", default=None, help="Email to subscribe to the thread.")
@click.option("--message", default=None, help="Commit message. Overrides config file.")
@click.option("--oauth-token", default=None, envvar="GITPOST_OAUTH_TOKEN", help="Per-request OAuth token.")
@click.pass_context
def entry_cmd(
    ctx,
    repo: tuple[str, str],
    service: str | None,
    file_path: str,
    branch: str | None,
    data_path: str | None,
    field_pairs: tuple[str, ...],
    fmt: str | None,
    moderate: bool | None,
    parent: str | None,
    origin: str | None,
    subscriber: str | None,
    message: str | None,
    oauth_token: str | None,
):
    """Commit a submission to a repository, or open a review for it.

    Fields come from --data and/or --field and are serialized as YAML or
    JSON into --path. With moderation on, the entry travels through a pull
    (or merge) request and subscribers are notified once it is merged.
    """
    config = ctx.obj["config"]
    registry = ctx.obj["registry"]
    owner, name = repo

    fields = _load_fields(data_path, field_pairs)
    if not fields:
        raise click.UsageError("No fields given. Use --data and/or --field.")

    client = build_client(ctx, service, repo, branch=branch, oauth_token=oauth_token)
    notifications = bool(config.get("notifications"))
    thread = Thread(owner, name, parent) if parent else None
    options = {k: v for k, v in {"origin": origin, "parent": parent}.items() if v}

    entry = Entry(
        owner=owner,
        repository=name,
        branch=client.branch,
        path=file_path,
        content=serialize_fields(fields, fmt or config["format"]),
        commit_message=message or config["commit_message"],
        requires_moderation=config["moderation"] if moderate is None else moderate,
        fields=fields,
        options=options,
        thread=thread if notifications else None,
        site_name=config.get("site_name"),
    )

    coordinator = ModerationCoordinator(client, notifier=registry, branch_prefix=config["branch_prefix"])
    try:
        result = coordinator.persist(entry)
    except HostingError as e:
        fail(ctx, e)
        return

    if isinstance(result, Committed):
        console.print(f"[green]Committed {file_path} to {client.full_name}@{client.branch} ({result.commit_ref[:7]})[/green]")
    else:
        url = f" {result.review.url}" if result.review.url else ""
        console.print(f"[green]Opened review #{result.review_id} from {result.review.source_branch}.{url}[/green]")

    if subscriber:
        if thread is None or not notifications:
            console.print("[yellow]Subscription skipped: needs --parent and notifications: true.[/yellow]")
            return
        try:
            registry.subscribe(thread, subscriber)
            console.print(f"Subscribed {subscriber} to replies on {parent}.")
        except NotificationError as e:
            console.print(f"[yellow]Could not subscribe {subscriber}: {e}[/yellow]")
