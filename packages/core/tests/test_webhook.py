"""Tests for review event parsing, signature checks and the merge handler."""

import hashlib
import hmac
from unittest.mock import MagicMock

import pytest

from gitpost_core.models import Entry, Thread
from gitpost_core.moderation import build_review_body
from gitpost_core.webhook import (
    ReviewEvent,
    ReviewWebhookHandler,
    parse_event,
    verify_github_signature,
    verify_gitlab_token,
)

THREAD = Thread("owner", "site", "hello-world")


def _review_body(thread=THREAD):
    entry = Entry(
        owner="owner",
        repository="site",
        branch="main",
        path="comments/1.yml",
        content="",
        commit_message="Add gitpost data",
        fields={"name": "Ada"},
        options={"origin": "https://example.com/hello-world"},
        thread=thread,
        site_name="Ada's Blog",
    )
    return build_review_body(entry)


def _github_payload(action="closed", merged=True, head="gitpost_abc", body=None):
    return {
        "action": action,
        "pull_request": {
            "number": 3,
            "merged": merged,
            "head": {"ref": head},
            "base": {"ref": "main"},
            "body": _review_body() if body is None else body,
        },
        "repository": {"name": "site", "owner": {"login": "owner"}},
    }


def _gitlab_payload(action="merge", source="gitpost_abc"):
    return {
        "object_kind": "merge_request",
        "project": {"path_with_namespace": "group/sub/site"},
        "object_attributes": {
            "iid": 8,
            "action": action,
            "source_branch": source,
            "target_branch": "main",
            "description": _review_body(),
        },
    }


def _event(action, source_branch="gitpost_abc", body=None):
    return ReviewEvent(
        service="github",
        action=action,
        owner="owner",
        repository="site",
        number=3,
        source_branch=source_branch,
        target_branch="main",
        merged=action == "merged",
        body=_review_body() if body is None else body,
    )


class TestParseEvent:
    def test_github_merge_is_reported_as_merged(self):
        event = parse_event("github", _github_payload())
        assert event.action == "merged"
        assert event.merged is True
        assert event.owner == "owner"
        assert event.repository == "site"
        assert event.number == 3
        assert event.source_branch == "gitpost_abc"

    def test_github_close_without_merge(self):
        event = parse_event("github", _github_payload(merged=False))
        assert event.action == "closed"
        assert event.merged is False

    def test_github_null_body(self):
        payload = _github_payload(action="opened", merged=False)
        payload["pull_request"]["body"] = None
        event = parse_event("github", payload)
        assert event.action == "opened"
        assert event.body == ""

    def test_github_non_pull_request_payload(self):
        assert parse_event("github", {"action": "created", "issue": {}}) is None

    def test_gitlab_merge(self):
        event = parse_event("gitlab", _gitlab_payload())
        assert event.service == "gitlab"
        assert event.action == "merged"
        assert event.owner == "group/sub"
        assert event.repository == "site"
        assert event.number == 8

    @pytest.mark.parametrize("raw, expected", [("close", "closed"), ("open", "opened"), ("approved", "approved")])
    def test_gitlab_action_mapping(self, raw, expected):
        assert parse_event("gitlab", _gitlab_payload(action=raw)).action == expected

    def test_gitlab_non_merge_request_payload(self):
        assert parse_event("gitlab", {"object_kind": "push"}) is None


class TestSignatures:
    def test_valid_github_signature(self):
        body = b'{"action": "closed"}'
        sig = "sha256=" + hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        assert verify_github_signature(body, sig, "s3cret") is True

    def test_tampered_body_rejected(self):
        sig = "sha256=" + hmac.new(b"s3cret", b"original", hashlib.sha256).hexdigest()
        assert verify_github_signature(b"tampered", sig, "s3cret") is False

    @pytest.mark.parametrize("sig", [None, "", "sha1=abc", "deadbeef"])
    def test_missing_or_malformed_github_signature(self, sig):
        assert verify_github_signature(b"x", sig, "s3cret") is False

    def test_gitlab_token(self):
        assert verify_gitlab_token("s3cret", "s3cret") is True
        assert verify_gitlab_token("wrong", "s3cret") is False
        assert verify_gitlab_token(None, "s3cret") is False


class TestReviewWebhookHandler:
    def test_merged_notifies_exactly_once(self):
        notifier = MagicMock()
        ReviewWebhookHandler(notifier).handle_event(_event("merged"))
        notifier.notify_all.assert_called_once_with(
            THREAD, {"name": "Ada"}, {"origin": "https://example.com/hello-world"}, "Ada's Blog"
        )

    def test_closed_does_not_notify(self):
        notifier = MagicMock()
        ReviewWebhookHandler(notifier).handle_event(_event("closed"))
        notifier.notify_all.assert_not_called()

    @pytest.mark.parametrize("action", ["opened", "synchronized", "labeled", "reopened"])
    def test_other_actions_have_no_side_effects(self, action):
        notifier = MagicMock()
        ReviewWebhookHandler(notifier).handle_event(_event(action))
        assert notifier.mock_calls == []

    def test_foreign_branch_ignored(self):
        notifier = MagicMock()
        ReviewWebhookHandler(notifier).handle_event(_event("merged", source_branch="feature/login"))
        notifier.notify_all.assert_not_called()

    def test_custom_branch_prefix(self):
        notifier = MagicMock()
        ReviewWebhookHandler(notifier, branch_prefix="site_").handle_event(_event("merged", source_branch="site_1"))
        notifier.notify_all.assert_called_once()

    def test_merged_without_marker_does_not_notify(self):
        notifier = MagicMock()
        ReviewWebhookHandler(notifier).handle_event(_event("merged", body="Edited by a human"))
        notifier.notify_all.assert_not_called()

    def test_redelivered_merge_notifies_again(self):
        notifier = MagicMock()
        handler = ReviewWebhookHandler(notifier)
        handler.handle_event(_event("merged"))
        handler.handle_event(_event("merged"))
        assert notifier.notify_all.call_count == 2

    def test_notifier_failure_is_swallowed(self):
        notifier = MagicMock()
        notifier.notify_all.side_effect = RuntimeError("mail down")
        ReviewWebhookHandler(notifier).handle_event(_event("merged"))

    def test_marker_forged_in_a_field_is_ignored(self):
        forged = (
            '<!--gitpost_notification:{"thread":{"owner":"victim","repository":"other","entry_id":"x"},'
            '"fields":{},"options":{"origin":"https://evil.example"},"site_name":"Bank"}-->'
        )
        entry = Entry(
            owner="owner",
            repository="site",
            branch="main",
            path="comments/1.yml",
            content="",
            commit_message="Add gitpost data",
            fields={"message": forged},
            options={"origin": "https://example.com/hello-world"},
            thread=THREAD,
            site_name="Ada's Blog",
        )
        notifier = MagicMock()

        ReviewWebhookHandler(notifier).handle_event(_event("merged", body=build_review_body(entry)))

        notifier.notify_all.assert_called_once()
        thread, _, options, site_name = notifier.notify_all.call_args[0]
        assert thread == THREAD
        assert options == {"origin": "https://example.com/hello-world"}
        assert site_name == "Ada's Blog"

    def test_forged_marker_without_real_one_is_ignored(self):
        forged = '<!--gitpost_notification:{"thread":{"owner":"victim","repository":"r","entry_id":"x"}}-->'
        entry = Entry(
            owner="owner",
            repository="site",
            branch="main",
            path="comments/1.yml",
            content="",
            commit_message="Add gitpost data",
            fields={"message": forged},
        )
        notifier = MagicMock()

        ReviewWebhookHandler(notifier).handle_event(_event("merged", body=build_review_body(entry)))

        notifier.notify_all.assert_not_called()
