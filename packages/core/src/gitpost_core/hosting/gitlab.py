"""GitLab REST v4 client.

Thin wrapper over the endpoints the hosting capability needs. A personal
token is sent as PRIVATE-TOKEN; an OAuth token as a Bearer header. The
project is addressed by its URL-encoded "owner/name" path, so no id lookup
is needed before the first call.
"""

from __future__ import annotations

from urllib.parse import quote

import requests

from gitpost_core.errors import InvitationError
from gitpost_core.hosting.base import BaseHostingClient
from gitpost_core.models import CommitResult, Identity, Invitation, ReviewRequest

DEFAULT_BASE_URL = "https://gitlab.com"

# Seconds, per call.
_TIMEOUT = 30


class GitLabClient(BaseHostingClient):
    SERVICE = "gitlab"
    API_ERRORS = (requests.RequestException,)
    REVIEW_CODE = "CREATING_MR"

    def __init__(
        self,
        owner: str,
        repository: str,
        branch: str = "main",
        token: str | None = None,
        oauth_token: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
    ):
        super().__init__(owner, repository, branch, token=token, oauth_token=oauth_token)
        self.api_url = f"{base_url.rstrip('/')}/api/v4"
        self._session = requests.Session()
        if self._uses_oauth:
            self._session.headers["Authorization"] = f"Bearer {self._token}"
        else:
            self._session.headers["PRIVATE-TOKEN"] = self._token

    @property
    def project_path(self) -> str:
        return f"/projects/{quote(self.full_name, safe='')}"

    def _request(self, method: str, path: str, **kwargs):
        resp = self._session.request(method, f"{self.api_url}{path}", timeout=_TIMEOUT, **kwargs)
        resp.raise_for_status()
        return resp.json() if resp.content else None

    def _file_path(self, path: str) -> str:
        return f"{self.project_path}/repository/files/{quote(path, safe='')}"

    def _fetch_file(self, path: str, ref: str) -> tuple[str, str | None]:
        data = self._request("GET", self._file_path(path), params={"ref": ref})
        return data["content"], data.get("blob_id")

    def _commit_file(self, path: str, content: str, branch: str, message: str) -> CommitResult:
        check = self._session.request(
            "HEAD", f"{self.api_url}{self._file_path(path)}", params={"ref": branch}, timeout=_TIMEOUT
        )
        method = "PUT" if check.status_code == 200 else "POST"
        self._request(
            method,
            self._file_path(path),
            json={"branch": branch, "content": content, "commit_message": message, "encoding": "text"},
        )
        # The files API answers with file_path/branch only; the new head is the commit.
        sha = self._resolve_branch_sha(branch)
        return CommitResult(sha=sha, path=path, branch=branch)

    def _resolve_branch_sha(self, branch: str) -> str:
        data = self._request("GET", f"{self.project_path}/repository/branches/{quote(branch, safe='')}")
        return data["commit"]["id"]

    def _create_branch(self, name: str, sha: str) -> None:
        self._request("POST", f"{self.project_path}/repository/branches", params={"branch": name, "ref": sha})

    def _open_review(self, source: str, target: str, title: str, body: str) -> ReviewRequest:
        data = self._request(
            "POST",
            f"{self.project_path}/merge_requests",
            json={
                "source_branch": source,
                "target_branch": target,
                "title": title,
                "description": body,
                "remove_source_branch": True,
            },
        )
        return ReviewRequest(id=data["iid"], source_branch=source, target_branch=target, url=data.get("web_url"))

    def _fetch_current_user(self) -> Identity:
        data = self._request("GET", "/user")
        return Identity(
            service=self.SERVICE,
            login=data["username"],
            email=data.get("email") or data.get("public_email"),
            name=data.get("name"),
        )

    def _fetch_invitations(self) -> list[Invitation]:
        # GitLab adds members directly; there is never anything to accept.
        return []

    def _accept_invitation(self, invitation_id: int) -> None:
        raise InvitationError(
            self._code("INVITATION"), f"GitLab has no invitation {invitation_id} to accept", status=404
        )

    def _status_of(self, exc: BaseException) -> int | None:
        response = getattr(exc, "response", None)
        return response.status_code if response is not None else None
