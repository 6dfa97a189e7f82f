from __future__ import annotations

from gitpost_core.hosting.base import BaseHostingClient
from gitpost_core.hosting.github import GitHubClient
from gitpost_core.hosting.gitlab import GitLabClient

SERVICES = ("github", "gitlab")


def get_client(
    service: str,
    owner: str,
    repository: str,
    config: dict,
    branch: str | None = None,
    oauth_token: str | None = None,
) -> BaseHostingClient:
    """Build the hosting client for one request.

    An explicit ``oauth_token`` wins over the personal token in ``config``.
    """
    branch = branch or config.get("branch", "main")
    if service == "github":
        return GitHubClient(
            owner,
            repository,
            branch,
            token=config.get("github_token"),
            oauth_token=oauth_token,
        )
    if service == "gitlab":
        return GitLabClient(
            owner,
            repository,
            branch,
            token=config.get("gitlab_token"),
            oauth_token=oauth_token,
            base_url=config.get("gitlab_base_url", "https://gitlab.com"),
        )
    raise ValueError(f"Unknown service: {service!r}. Choose 'github' or 'gitlab'.")
