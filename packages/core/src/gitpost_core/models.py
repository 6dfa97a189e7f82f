"""Data model shared by the hosting clients, the coordinator and the webhook handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Thread:
    """A discussion thread: the key subscriptions are grouped under.

    ``entry_id`` is the parent identifier supplied by the site, e.g. a post slug.
    """

    owner: str
    repository: str
    entry_id: str

    def to_dict(self) -> dict:
        return {"owner": self.owner, "repository": self.repository, "entry_id": self.entry_id}

    @classmethod
    def from_dict(cls, d: dict) -> Thread:
        return cls(owner=str(d["owner"]), repository=str(d["repository"]), entry_id=str(d["entry_id"]))


@dataclass
class Entry:
    """One accepted submission, ready to become a committed file.

    Built by the submission pipeline and consumed once by
    ModerationCoordinator.persist(). Its only durable form is the commit.
    """

    owner: str
    repository: str
    branch: str
    path: str
    content: str
    commit_message: str
    requires_moderation: bool = False
    fields: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)
    thread: Thread | None = None
    site_name: str | None = None
    review_body: str = ""


@dataclass(frozen=True)
class Identity:
    service: str  # "github" | "gitlab"
    login: str
    email: str | None
    name: str | None


@dataclass(frozen=True)
class Invitation:
    id: int
    repository: str  # "owner/name"


@dataclass(frozen=True)
class CommitResult:
    sha: str
    path: str
    branch: str


@dataclass
class FileContents:
    """Full-response form of read_file(): parsed document plus what it came from."""

    content: Any
    raw: str
    sha: str | None = None


@dataclass(frozen=True)
class ReviewRequest:
    """An in-flight pull request (GitHub) or merge request (GitLab)."""

    id: int
    source_branch: str
    target_branch: str
    url: str | None = None
    thread: Thread | None = None


@dataclass(frozen=True)
class Committed:
    commit: CommitResult

    @property
    def commit_ref(self) -> str:
        return self.commit.sha


@dataclass(frozen=True)
class ReviewOpened:
    review: ReviewRequest

    @property
    def review_id(self) -> int:
        return self.review.id


PersistResult = Union[Committed, ReviewOpened]
