"""CLI entry point for gitpost.

Commands:
  entry      commit a submission directly or open a review for it
  webhook    handle a pull/merge request event payload
  subscribe  subscribe an email address to a thread
  read       print a parsed YAML/JSON file from a repository
  connect    accept a pending collaboration invitation
  whoami     show the identity bound to the hosting token
  init       interactive setup wizard
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from gitpost_cli.commands.connect import connect_cmd
from gitpost_cli.commands.entry import entry_cmd
from gitpost_cli.commands.init import init_cmd
from gitpost_cli.commands.read import read_cmd
from gitpost_cli.commands.subscribe import subscribe_cmd
from gitpost_cli.commands.webhook import webhook_cmd
from gitpost_cli.commands.whoami import whoami_cmd

console = Console()


def _build_mail_agent(config: dict):
    """Instantiate the configured mail transport.

    Agent selection:
      mailgun_api_key + mail_domain → MailgunAgent
      (otherwise)                   → NoOpMailAgent (nobody is emailed)

    This factory lives in cli.py so neither gitpost_core nor gitpost_notify
    know about the CLI config format.
    """
    from gitpost_notify.noop import NoOpMailAgent

    api_key = config.get("mailgun_api_key")
    domain = config.get("mail_domain")
    if api_key and domain:
        from gitpost_notify.mailgun import MailgunAgent

        return MailgunAgent(api_key=api_key, domain=domain, api_base_url=config["mail_api_base_url"])

    if config.get("notifications"):
        console.print(
            "[yellow]Notifications need MAILGUN_API_KEY and mail_domain. Falling back to no mail agent.[/yellow]"
        )
    return NoOpMailAgent()


def _build_registry(config: dict, agent):
    from gitpost_notify.notification import NotificationComposer
    from gitpost_notify.subscriptions import SubscriptionRegistry

    composer = NotificationComposer(agent, config["from_address"], config["from_name"])
    return SubscriptionRegistry(agent, composer)


@click.group()
@click.version_option(
    version=importlib.metadata.version("gitpost"),
    prog_name="gitpost",
)
@click.option(
    "--config",
    "config_path",
    default=".gitpost.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GITPOST_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log provider calls to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Commit static-site submissions to GitHub/GitLab, with moderation and reply notifications."""
    from gitpost_cli.auth import resolve_github_token
    from gitpost_core.config import load_config

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler(console=Console(stderr=True))])

    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    if not config.get("github_token"):
        config["github_token"] = resolve_github_token()

    agent = _build_mail_agent(config)
    ctx.obj["config"] = config
    ctx.obj["mail_agent"] = agent
    ctx.obj["registry"] = _build_registry(config, agent)
    ctx.call_on_close(agent.close)


main.add_command(entry_cmd)
main.add_command(webhook_cmd)
main.add_command(subscribe_cmd)
main.add_command(read_cmd)
main.add_command(connect_cmd)
main.add_command(whoami_cmd)
main.add_command(init_cmd)
