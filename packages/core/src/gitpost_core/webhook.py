"""Review lifecycle events: Open → Merged | ClosedUnmerged.

Transitions are observed only through provider webhooks; nothing here polls.
A review whose closing event never arrives stays open from our point of view.
Re-delivered ``merged`` events notify again: no de-duplication state is kept
and a duplicate email is tolerated.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass

from gitpost_core.moderation import DEFAULT_BRANCH_PREFIX, parse_notification_marker

logger = logging.getLogger(__name__)

_GITLAB_ACTIONS = {
    "open": "opened",
    "reopen": "reopened",
    "update": "synchronized",
    "close": "closed",
    "merge": "merged",
}


@dataclass(frozen=True)
class ReviewEvent:
    service: str
    action: str  # "opened" | "closed" | "merged" | anything else is ignored
    owner: str
    repository: str
    number: int
    source_branch: str
    target_branch: str
    merged: bool = False
    body: str = ""

    @classmethod
    def from_github(cls, payload: dict) -> ReviewEvent:
        """Build from a GitHub ``pull_request`` webhook payload."""
        pr = payload["pull_request"]
        repo = payload["repository"]
        merged = bool(pr.get("merged"))
        action = payload.get("action", "")
        # GitHub reports a merge as "closed" with merged=true.
        if action == "closed" and merged:
            action = "merged"
        return cls(
            service="github",
            action=action,
            owner=repo["owner"]["login"],
            repository=repo["name"],
            number=pr["number"],
            source_branch=pr["head"]["ref"],
            target_branch=pr["base"]["ref"],
            merged=merged,
            body=pr.get("body") or "",
        )

    @classmethod
    def from_gitlab(cls, payload: dict) -> ReviewEvent:
        """Build from a GitLab ``merge_request`` hook payload."""
        attrs = payload["object_attributes"]
        owner, _, name = payload["project"]["path_with_namespace"].rpartition("/")
        raw_action = attrs.get("action") or ""
        action = _GITLAB_ACTIONS.get(raw_action, raw_action)
        return cls(
            service="gitlab",
            action=action,
            owner=owner,
            repository=name,
            number=attrs["iid"],
            source_branch=attrs["source_branch"],
            target_branch=attrs["target_branch"],
            merged=action == "merged",
            body=attrs.get("description") or "",
        )


def parse_event(service: str, payload: dict) -> ReviewEvent | None:
    """Normalise a raw webhook payload; None when it is not a review event."""
    if service == "github" and "pull_request" in payload:
        return ReviewEvent.from_github(payload)
    if service == "gitlab" and payload.get("object_kind") == "merge_request":
        return ReviewEvent.from_gitlab(payload)
    return None


def verify_github_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the raw request body."""
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f"sha256={expected}", signature)


def verify_gitlab_token(token: str | None, secret: str) -> bool:
    """Check an ``X-Gitlab-Token`` header against the configured secret."""
    if not token:
        return False
    return hmac.compare_digest(token, secret)


class ReviewWebhookHandler:
    """Reacts to closed reviews; only a merge has side effects."""

    def __init__(self, notifier, branch_prefix: str = DEFAULT_BRANCH_PREFIX):
        self.notifier = notifier
        self.branch_prefix = branch_prefix

    def handle_event(self, event: ReviewEvent) -> None:
        if event.action == "merged":
            self._on_merged(event)
        elif event.action == "closed":
            logger.info("Review #%s on %s/%s closed without merge", event.number, event.owner, event.repository)
        else:
            logger.debug("Ignoring %r event for review #%s", event.action, event.number)

    def _on_merged(self, event: ReviewEvent) -> None:
        if not event.source_branch.startswith(self.branch_prefix):
            logger.debug("Review #%s is not a gitpost entry (%s)", event.number, event.source_branch)
            return

        payload = parse_notification_marker(event.body)
        if payload is None or payload["thread"] is None:
            logger.debug("Review #%s carries no thread to notify", event.number)
            return

        thread = payload["thread"]
        try:
            self.notifier.notify_all(
                thread,
                payload.get("fields") or {},
                payload.get("options") or {},
                payload.get("site_name"),
            )
        except Exception as e:
            # The merge already happened upstream.
            logger.warning("Notification for %s failed (%s): %s", thread, type(e).__name__, e)
