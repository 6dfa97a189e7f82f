"""init command: interactive setup wizard for a site repository.

Writes .gitpost.yml and, for GitHub sites with moderation and
notifications on, a GitHub Actions workflow that runs `gitpost webhook`
whenever a pull request is closed.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()

_WORKFLOW_TEMPLATE = """\
name: gitpost notifications

on:
  pull_request:
    types: [closed]

jobs:
  notify:
    if: github.event.pull_request.merged && startsWith(github.head_ref, '{branch_prefix}')
    runs-on: ubuntu-latest
    permissions:
      contents: read

    steps:
      - uses: actions/checkout@v4

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install gitpost
        run: pip install "gitpost=={version}"

      - name: Notify subscribers
        env:
          MAILGUN_API_KEY: ${{{{ secrets.MAILGUN_API_KEY }}}}
        run: gitpost webhook --service github
"""

_KNOWN_HOSTS = {"github.com": "github", "gitlab.com": "gitlab"}


@click.command("init")
@click.option("--repo", default=None, help="Repository (owner/name). Auto-detected from git remote.")
@click.pass_context
def init_cmd(ctx, repo: str | None):
    """Set up gitpost for a site repository.

    Creates .gitpost.yml and optionally a GitHub Actions workflow that
    emails subscribers when a moderated entry is merged.
    """
    console.print("\n[bold cyan]gitpost init[/bold cyan]: site setup wizard\n")

    detected_service = None
    if repo is None:
        detected = _detect_repo_from_git()
        if detected:
            detected_service, repo = detected
            console.print(f"[dim]Detected repository: {repo} ({detected_service})[/dim]")
        else:
            repo = click.prompt("Repository (owner/name)")

    service = click.prompt(
        "Hosting provider",
        type=click.Choice(["github", "gitlab"]),
        default=detected_service or "github",
    )
    branch = click.prompt("Branch entries are committed to", default="main")
    site_name = click.prompt("Site name (used in notification emails)", default="", show_default=False)
    moderation = click.confirm("Moderate entries through pull/merge requests?", default=True)

    config: dict = {"service": service, "branch": branch, "moderation": moderation}
    if site_name:
        config["site_name"] = site_name

    notifications = click.confirm("Email subscribers when someone replies?", default=False)
    if notifications:
        config["notifications"] = True
        config["mail_domain"] = click.prompt("Mailgun sending domain (e.g. mg.example.com)")
        console.print("[yellow]Remember to export MAILGUN_API_KEY wherever gitpost runs.[/yellow]")

    _write_config(config)
    console.print("[green]Created .gitpost.yml[/green]")

    if service == "github" and moderation and notifications:
        if click.confirm("\nGenerate .github/workflows/gitpost.yml to notify on merge?", default=True):
            _write_workflow(branch_prefix=ctx.obj["config"]["branch_prefix"])
            console.print("[green]Created .github/workflows/gitpost.yml[/green]")
            console.print(
                "\n[yellow]Add [bold]MAILGUN_API_KEY[/bold] to your repository secrets "
                "(Settings → Secrets → Actions).[/yellow]"
            )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Invite the bot account to [bold]{repo}[/bold], then run: [bold]gitpost connect --repo {repo}[/bold]")


def _detect_repo_from_git() -> tuple[str, str] | None:
    """Try to detect (service, owner/name) from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        # https://github.com/owner/repo.git  →  owner/repo
        # git@gitlab.com:group/repo.git      →  group/repo
        for host, service in _KNOWN_HOSTS.items():
            if host in url:
                slug = url.split(host)[-1].lstrip("/:").removesuffix(".git")
                return (service, slug) if "/" in slug else None
        return None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _write_config(config: dict) -> None:
    """Write or update .gitpost.yml, preserving any existing keys."""
    path = Path(".gitpost.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    """Read the current gitpost version from the installed package metadata."""
    try:
        from importlib.metadata import version

        return version("gitpost")
    except Exception:
        return "0.1.0"


def _write_workflow(branch_prefix: str) -> None:
    """Write the GitHub Actions workflow file."""
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    workflow_path = workflow_dir / "gitpost.yml"
    workflow_path.write_text(_WORKFLOW_TEMPLATE.format(branch_prefix=branch_prefix, version=_get_version()))
