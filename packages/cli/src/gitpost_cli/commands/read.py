"""read command: fetch and parse a YAML/JSON file from a repository."""

from __future__ import annotations

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax

from gitpost_cli.options import build_client, fail, repo_option, service_option
from gitpost_core.errors import HostingError

console = Console()


@click.command("read")
@repo_option
@service_option
@click.option("--path", "file_path", required=True, help="Path of the file inside the repository.")
@click.option("--ref", default=None, help="Branch, tag or sha. Defaults to the configured branch.")
@click.option("--raw", is_flag=True, help="Print the file as stored instead of the parsed document.")
@click.pass_context
def read_cmd(ctx, repo: tuple[str, str], service: str | None, file_path: str, ref: str | None, raw: bool):
    """Print a parsed site file, e.g. the site's gitpost.yml."""
    client = build_client(ctx, service, repo)
    try:
        result = client.read_file(file_path, ref=ref, full_response=True)
    except HostingError as e:
        fail(ctx, e)
        return

    if raw:
        click.echo(result.raw, nl=False)
        return
    rendered = yaml.safe_dump(result.content, default_flow_style=False, sort_keys=False, allow_unicode=True)
    console.print(Syntax(rendered, "yaml"))
