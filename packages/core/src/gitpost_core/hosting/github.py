from __future__ import annotations

from github import Github, GithubException, UnknownObjectException

from gitpost_core.errors import ReadError
from gitpost_core.hosting.base import BaseHostingClient
from gitpost_core.models import CommitResult, Identity, Invitation, ReviewRequest


class GitHubClient(BaseHostingClient):
    SERVICE = "github"
    API_ERRORS = (GithubException,)
    REVIEW_CODE = "CREATING_PR"

    def __init__(
        self,
        owner: str,
        repository: str,
        branch: str = "main",
        token: str | None = None,
        oauth_token: str | None = None,
    ):
        super().__init__(owner, repository, branch, token=token, oauth_token=oauth_token)
        self.api = Github(self._token)
        self._repo = None

    @property
    def repo(self):
        # lazy=True: no request until the first real call.
        if self._repo is None:
            self._repo = self.api.get_repo(self.full_name, lazy=True)
        return self._repo

    def _fetch_file(self, path: str, ref: str) -> tuple[str, str | None]:
        contents = self.repo.get_contents(path, ref=ref)
        if isinstance(contents, list):
            raise ReadError(self._code("READING_FILE"), f"{path} is a directory", status=400)
        return contents.content, contents.sha

    def _commit_file(self, path: str, content: str, branch: str, message: str) -> CommitResult:
        try:
            existing = self.repo.get_contents(path, ref=branch)
        except UnknownObjectException:
            existing = None

        if existing is None or isinstance(existing, list):
            result = self.repo.create_file(path, message, content, branch=branch)
        else:
            result = self.repo.update_file(path, message, content, existing.sha, branch=branch)
        return CommitResult(sha=result["commit"].sha, path=path, branch=branch)

    def _resolve_branch_sha(self, branch: str) -> str:
        return self.repo.get_branch(branch).commit.sha

    def _create_branch(self, name: str, sha: str) -> None:
        self.repo.create_git_ref(ref=f"refs/heads/{name}", sha=sha)

    def _open_review(self, source: str, target: str, title: str, body: str) -> ReviewRequest:
        pr = self.repo.create_pull(title=title, body=body, head=source, base=target)
        return ReviewRequest(id=pr.number, source_branch=source, target_branch=target, url=pr.html_url)

    def _fetch_current_user(self) -> Identity:
        user = self.api.get_user()
        return Identity(service=self.SERVICE, login=user.login, email=user.email, name=user.name)

    def _fetch_invitations(self) -> list[Invitation]:
        return [
            Invitation(id=inv.id, repository=inv.repository.full_name)
            for inv in self.api.get_user().get_invitations()
        ]

    def _accept_invitation(self, invitation_id: int) -> None:
        self.api.get_user().accept_invitation(invitation_id)

    def _status_of(self, exc: BaseException) -> int | None:
        return getattr(exc, "status", None)
