"""Direct-commit vs. review-request routing for accepted entries."""

from __future__ import annotations

import html
import json
import logging
import re
import uuid
from dataclasses import replace

from gitpost_core.hosting.base import BaseHostingClient
from gitpost_core.models import Committed, Entry, PersistResult, ReviewOpened, Thread

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_PREFIX = "gitpost_"

# Only a marker that closes the body counts; ">" never occurs inside the payload.
_NOTIFICATION_MARKER_RE = re.compile(r"<!--gitpost_notification:([^>]*)-->\s*\Z")

_REVIEW_GREETING = """\
Dear human,

Here's a new entry for your approval. :tada:

Merge the pull request to accept it, or close it to send it away.

---
"""


def new_branch_name(prefix: str = DEFAULT_BRANCH_PREFIX) -> str:
    """Return a time-based branch name that will not collide with earlier submissions."""
    return f"{prefix}{uuid.uuid1().hex}"


def build_notification_marker(entry: Entry) -> str:
    """Serialize what the merge handler needs to notify the thread.

    The payload rides in an HTML comment so it is invisible in the rendered
    review. ``<`` and ``>`` are escaped so user-supplied text can neither
    close the comment nor open a second marker inside it.
    """
    payload = {
        "thread": entry.thread.to_dict() if entry.thread else None,
        "fields": entry.fields,
        "options": entry.options,
        "site_name": entry.site_name,
    }
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
    data = data.replace("<", "\\u003c").replace(">", "\\u003e")
    return f"<!--gitpost_notification:{data}-->"


def parse_notification_marker(body: str | None) -> dict | None:
    """Return the notification payload embedded in a review body, or None."""
    match = _NOTIFICATION_MARKER_RE.search(body or "")
    if not match:
        return None
    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed notification marker: %s", match.group(1)[:200])
        return None
    if not isinstance(payload, dict):
        return None
    thread = payload.get("thread")
    payload["thread"] = Thread.from_dict(thread) if thread else None
    return payload


def _table_cell(value) -> str:
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    return html.escape(text, quote=False).replace("|", "\\|").replace("\n", "<br>")


def build_review_body(entry: Entry) -> str:
    """Render the pull/merge request description for a moderated entry."""
    lines = [_REVIEW_GREETING]
    if entry.fields:
        lines.append("| Field | Content |")
        lines.append("|-------|---------|")
        for name, value in entry.fields.items():
            lines.append(f"| {_table_cell(name)} | {_table_cell(value)} |")
    body = "\n".join(lines)
    if entry.thread is not None:
        body += "\n\n" + build_notification_marker(entry)
    return body


class ModerationCoordinator:
    """Single entry point the submission pipeline calls to persist an entry.

    ``notifier`` is anything with ``notify_all(thread, fields, options,
    site_name)``; the CLI wires in a SubscriptionRegistry. Without one, or
    for entries that have no thread, no notification is attempted.
    """

    def __init__(
        self,
        client: BaseHostingClient,
        notifier=None,
        branch_prefix: str = DEFAULT_BRANCH_PREFIX,
    ):
        self.client = client
        self.notifier = notifier
        self.branch_prefix = branch_prefix

    def persist(self, entry: Entry) -> PersistResult:
        """Commit ``entry`` directly or open a review for it.

        WriteError and CreateReviewError propagate unchanged; the submission
        is then safe to resend. Notification failures never propagate.
        """
        if not entry.requires_moderation:
            commit = self.client.write_file(entry.path, entry.content, entry.branch, entry.commit_message)
            logger.info("Committed %s to %s@%s (%s)", entry.path, self.client.full_name, entry.branch, commit.sha)
            self._notify(entry)
            return Committed(commit)

        review = self.client.write_file_and_open_review(
            entry.path,
            entry.content,
            new_branch_name(self.branch_prefix),
            entry.commit_message,
            entry.review_body or build_review_body(entry),
            base_branch=entry.branch,
        )
        return ReviewOpened(replace(review, thread=entry.thread))

    def _notify(self, entry: Entry) -> None:
        if entry.thread is None or self.notifier is None:
            return
        try:
            self.notifier.notify_all(entry.thread, entry.fields, entry.options, entry.site_name)
        except Exception as e:
            # The entry is already committed.
            logger.warning("Notification for %s failed (%s): %s", entry.thread, type(e).__name__, e)
