"""webhook command: close the moderation loop from a review event payload.

Designed for CI: in a GitHub Actions workflow triggered on
`pull_request: types: [closed]`, the runner writes the event payload to
$GITHUB_EVENT_PATH and this command picks it up with no extra arguments.
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console

from gitpost_core.hosting.factory import SERVICES
from gitpost_core.webhook import ReviewWebhookHandler, parse_event, verify_github_signature, verify_gitlab_token

console = Console()


@click.command("webhook")
@click.option(
    "--service",
    type=click.Choice(SERVICES),
    default=None,
    help="Provider that sent the event. Overrides config file.",
)
@click.option(
    "--event-path",
    envvar="GITHUB_EVENT_PATH",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File holding the raw event payload. Defaults to $GITHUB_EVENT_PATH.",
)
@click.option(
    "--signature",
    default=None,
    help="X-Hub-Signature-256 (GitHub) or X-Gitlab-Token (GitLab) header to verify.",
)
@click.pass_context
def webhook_cmd(ctx, service: str | None, event_path: str, signature: str | None):
    """Handle one pull/merge request event.

    A merged gitpost review notifies the thread's subscribers; a review
    closed without merging is discarded; every other action is ignored.
    """
    config = ctx.obj["config"]
    service = service or config["service"]
    raw = Path(event_path).read_bytes()

    if signature is not None:
        secret = config.get("webhook_secret")
        if not secret:
            raise click.UsageError("GITPOST_WEBHOOK_SECRET is not set; cannot verify --signature.")
        valid = (
            verify_github_signature(raw, signature, secret)
            if service == "github"
            else verify_gitlab_token(signature, secret)
        )
        if not valid:
            raise click.UsageError("Invalid webhook signature.")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.UsageError(f"Event payload is not valid JSON: {e}")

    event = parse_event(service, payload)
    if event is None:
        console.print("[yellow]Not a pull/merge request event. Nothing to do.[/yellow]")
        return

    handler = ReviewWebhookHandler(ctx.obj["registry"], branch_prefix=config["branch_prefix"])
    handler.handle_event(event)
    console.print(f"Handled [bold]{event.action}[/bold] event for review #{event.number} on {event.owner}/{event.repository}.")
