"""Base hosting client implementing the Template Method pattern.

Both providers share the same operation shapes:
    read_file()  → _fetch_file() → base64 decode → parse_document()
    write_file() → _commit_file()
    write_file_and_open_review()
        → _resolve_branch_sha() → _create_branch() → _commit_file() → _open_review()

Subclasses implement the provider primitives only (the underscored methods
plus identity/invitation lookups). Error translation, defaults and the order
of the four review steps live here so every provider behaves identically.
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import Any

from gitpost_core.errors import (
    CreateReviewError,
    GetUserError,
    InvitationError,
    MissingCredentialError,
    ReadError,
    WriteError,
)
from gitpost_core.models import CommitResult, FileContents, Identity, Invitation, ReviewRequest
from gitpost_core.utils.document import parse_document

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Add gitpost data"


class BaseHostingClient(ABC):
    """One client per logical request; the credential never outlives it."""

    SERVICE: str = ""
    # Exceptions the provider SDK raises; only these are translated.
    API_ERRORS: tuple[type[BaseException], ...] = ()
    REVIEW_CODE: str = "CREATING_PR"

    def __init__(
        self,
        owner: str,
        repository: str,
        branch: str = "main",
        token: str | None = None,
        oauth_token: str | None = None,
    ):
        credential = oauth_token or token
        if not credential:
            raise MissingCredentialError()
        self.owner = owner
        self.repository = repository
        self.branch = branch
        self._uses_oauth = bool(oauth_token)
        self._token = credential

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repository}"

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def read_file(self, path: str, ref: str | None = None, full_response: bool = False) -> Any:
        """Fetch, decode and parse a YAML/JSON file from the repository.

        Raises ReadError when the provider call fails or the file is absent,
        and ParseError when the content is not a valid document.
        """
        ref = ref or self.branch
        try:
            encoded, sha = self._fetch_file(path, ref)
        except self.API_ERRORS as e:
            raise self._error(ReadError, "READING_FILE", e) from e

        try:
            raw = base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ReadError(self._code("READING_FILE"), f"Could not decode {path}: {e}") from e

        content = parse_document(raw, path)
        if full_response:
            return FileContents(content=content, raw=raw, sha=sha)
        return content

    def write_file(
        self,
        path: str,
        content: str,
        branch: str | None = None,
        commit_message: str = DEFAULT_COMMIT_MESSAGE,
    ) -> CommitResult:
        branch = branch or self.branch
        try:
            return self._commit_file(path, content, branch, commit_message)
        except self.API_ERRORS as e:
            raise self._error(WriteError, "WRITING_FILE", e) from e

    def write_file_and_open_review(
        self,
        path: str,
        content: str,
        new_branch: str,
        commit_title: str = DEFAULT_COMMIT_MESSAGE,
        commit_body: str = "",
        base_branch: str | None = None,
    ) -> ReviewRequest:
        """Commit to a fresh branch and open a review into the base branch.

        ``base_branch`` defaults to the client branch. Steps run strictly in
        sequence; each one needs the previous result. A failure aborts the
        remainder and nothing already created is rolled back, so an orphaned
        branch may be left behind.
        """
        base_branch = base_branch or self.branch
        try:
            sha = self._resolve_branch_sha(base_branch)
            self._create_branch(new_branch, sha)
            self._commit_file(path, content, new_branch, commit_title)
            review = self._open_review(new_branch, base_branch, commit_title, commit_body)
        except self.API_ERRORS as e:
            raise self._error(CreateReviewError, self.REVIEW_CODE, e) from e
        logger.info("Opened review #%s on %s from %s", review.id, self.full_name, new_branch)
        return review

    def get_current_user(self) -> Identity:
        try:
            return self._fetch_current_user()
        except self.API_ERRORS as e:
            raise self._error(GetUserError, "GET_USER", e) from e

    def list_pending_invitations(self) -> list[Invitation]:
        try:
            return self._fetch_invitations()
        except self.API_ERRORS as e:
            raise self._error(InvitationError, "INVITATION", e) from e

    def accept_invitation(self, invitation_id: int) -> None:
        try:
            self._accept_invitation(invitation_id)
        except self.API_ERRORS as e:
            raise self._error(InvitationError, "INVITATION", e) from e

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _fetch_file(self, path: str, ref: str) -> tuple[str, str | None]:
        """Return (base64 content, blob sha) for ``path`` at ``ref``.

        Must raise one of API_ERRORS when the file does not exist.
        """

    @abstractmethod
    def _commit_file(self, path: str, content: str, branch: str, message: str) -> CommitResult:
        """Create or update ``path`` on ``branch`` in a single commit."""

    @abstractmethod
    def _resolve_branch_sha(self, branch: str) -> str:
        """Return the head commit sha of ``branch``."""

    @abstractmethod
    def _create_branch(self, name: str, sha: str) -> None:
        """Create branch ``name`` pointing at ``sha``."""

    @abstractmethod
    def _open_review(self, source: str, target: str, title: str, body: str) -> ReviewRequest:
        """Open a pull/merge request from ``source`` into ``target``."""

    @abstractmethod
    def _fetch_current_user(self) -> Identity:
        """Return the identity bound to the active credential."""

    @abstractmethod
    def _fetch_invitations(self) -> list[Invitation]:
        """Return collaboration invitations awaiting the authenticated user."""

    @abstractmethod
    def _accept_invitation(self, invitation_id: int) -> None:
        """Accept one collaboration invitation."""

    @abstractmethod
    def _status_of(self, exc: BaseException) -> int | None:
        """Extract the HTTP status from a provider exception, if any."""

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _code(self, suffix: str) -> str:
        return f"{self.SERVICE.upper()}_{suffix}"

    def _error(self, cls, suffix: str, exc: BaseException):
        status = self._status_of(exc)
        logger.warning("%s %s failed on %s (status=%s): %s", self.SERVICE, suffix, self.full_name, status, exc)
        return cls(self._code(suffix), str(exc), status=status)
