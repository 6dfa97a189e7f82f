"""Tests for the shared hosting client behaviour (error translation, step order)."""

import base64
from unittest.mock import MagicMock

import pytest

from gitpost_core.errors import (
    CreateReviewError,
    GetUserError,
    InvitationError,
    MissingCredentialError,
    ParseError,
    ReadError,
    WriteError,
)
from gitpost_core.hosting.base import DEFAULT_COMMIT_MESSAGE, BaseHostingClient
from gitpost_core.models import CommitResult, FileContents, Identity, ReviewRequest
from gitpost_core.utils.document import serialize_fields


class FakeApiError(Exception):
    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class StubClient(BaseHostingClient):
    """Records provider primitive calls on a MagicMock so tests can check order."""

    SERVICE = "stub"
    API_ERRORS = (FakeApiError,)
    REVIEW_CODE = "CREATING_PR"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = MagicMock()

    def _fetch_file(self, path, ref):
        return self.calls.fetch_file(path, ref)

    def _commit_file(self, path, content, branch, message):
        return self.calls.commit_file(path, content, branch, message)

    def _resolve_branch_sha(self, branch):
        return self.calls.resolve_branch_sha(branch)

    def _create_branch(self, name, sha):
        return self.calls.create_branch(name, sha)

    def _open_review(self, source, target, title, body):
        return self.calls.open_review(source, target, title, body)

    def _fetch_current_user(self):
        return self.calls.fetch_current_user()

    def _fetch_invitations(self):
        return self.calls.fetch_invitations()

    def _accept_invitation(self, invitation_id):
        return self.calls.accept_invitation(invitation_id)

    def _status_of(self, exc):
        return getattr(exc, "status", None)


def _b64(text):
    return base64.b64encode(text.encode()).decode()


def _client(**kwargs):
    kwargs.setdefault("token", "tok")
    return StubClient("owner", "site", **kwargs)


class TestCredentials:
    def test_no_token_raises_missing_credential(self):
        with pytest.raises(MissingCredentialError) as exc_info:
            StubClient("owner", "site")
        assert exc_info.value.code == "MISSING_CREDENTIAL"
        assert "oauth_token" in exc_info.value.message

    def test_oauth_token_preferred_over_personal_token(self):
        client = StubClient("owner", "site", token="personal", oauth_token="oauth")
        assert client._token == "oauth"
        assert client._uses_oauth is True

    def test_personal_token_used_when_no_oauth(self):
        client = StubClient("owner", "site", token="personal")
        assert client._token == "personal"
        assert client._uses_oauth is False

    def test_full_name(self):
        assert _client().full_name == "owner/site"


class TestReadFile:
    def test_returns_parsed_yaml(self):
        client = _client()
        client.calls.fetch_file.return_value = (_b64("comments: true\n"), "blob1")
        assert client.read_file("gitpost.yml") == {"comments": True}

    def test_defaults_ref_to_client_branch(self):
        client = _client(branch="master")
        client.calls.fetch_file.return_value = (_b64("a: 1"), None)
        client.read_file("gitpost.yml")
        client.calls.fetch_file.assert_called_once_with("gitpost.yml", "master")

    def test_explicit_ref_wins(self):
        client = _client()
        client.calls.fetch_file.return_value = (_b64("a: 1"), None)
        client.read_file("gitpost.yml", ref="v1.0")
        client.calls.fetch_file.assert_called_once_with("gitpost.yml", "v1.0")

    def test_full_response_includes_raw_and_sha(self):
        client = _client()
        client.calls.fetch_file.return_value = (_b64('{"a": 1}'), "blob1")
        result = client.read_file("data.json", full_response=True)
        assert isinstance(result, FileContents)
        assert result.content == {"a": 1}
        assert result.raw == '{"a": 1}'
        assert result.sha == "blob1"

    def test_provider_failure_raises_read_error_with_status(self, mocker):
        client = _client()
        client.calls.fetch_file.side_effect = FakeApiError("boom", status=500)
        parse = mocker.patch("gitpost_core.hosting.base.parse_document")

        with pytest.raises(ReadError) as exc_info:
            client.read_file("gitpost.yml")

        assert exc_info.value.code == "STUB_READING_FILE"
        assert exc_info.value.status == 500
        parse.assert_not_called()

    def test_missing_file_raises_read_error(self):
        client = _client()
        client.calls.fetch_file.side_effect = FakeApiError("Not Found", status=404)
        with pytest.raises(ReadError) as exc_info:
            client.read_file("missing.yml")
        assert exc_info.value.status == 404

    def test_bad_base64_raises_read_error(self):
        client = _client()
        client.calls.fetch_file.return_value = ("not base64!!", None)
        with pytest.raises(ReadError):
            client.read_file("gitpost.yml")

    def test_malformed_document_raises_parse_error_not_read_error(self):
        client = _client()
        client.calls.fetch_file.return_value = (_b64("{bad"), None)
        with pytest.raises(ParseError) as exc_info:
            client.read_file("data.json")
        assert not isinstance(exc_info.value, ReadError)
        assert exc_info.value.code == "PARSING_ERROR"


class TestWriteFile:
    def test_commits_to_given_branch(self):
        client = _client()
        commit = CommitResult(sha="abc", path="comments/1.yml", branch="master")
        client.calls.commit_file.return_value = commit

        result = client.write_file("comments/1.yml", "name: Ada\n", "master", "New comment")

        client.calls.commit_file.assert_called_once_with("comments/1.yml", "name: Ada\n", "master", "New comment")
        assert result is commit

    def test_defaults_branch_and_message(self):
        client = _client(branch="gh-pages")
        client.write_file("a.yml", "x: 1\n")
        client.calls.commit_file.assert_called_once_with("a.yml", "x: 1\n", "gh-pages", DEFAULT_COMMIT_MESSAGE)

    def test_failure_raises_write_error(self):
        client = _client()
        client.calls.commit_file.side_effect = FakeApiError("conflict", status=409)
        with pytest.raises(WriteError) as exc_info:
            client.write_file("a.yml", "x: 1\n")
        assert exc_info.value.code == "STUB_WRITING_FILE"
        assert exc_info.value.status == 409


class TestWriteFileAndOpenReview:
    def test_steps_run_in_order(self):
        client = _client()
        client.calls.resolve_branch_sha.return_value = "base-sha"
        client.calls.open_review.return_value = ReviewRequest(id=7, source_branch="gitpost_x", target_branch="main")

        review = client.write_file_and_open_review("a.yml", "x: 1\n", "gitpost_x", "Title", "Body")

        assert [c[0] for c in client.calls.method_calls] == [
            "resolve_branch_sha",
            "create_branch",
            "commit_file",
            "open_review",
        ]
        client.calls.create_branch.assert_called_once_with("gitpost_x", "base-sha")
        client.calls.commit_file.assert_called_once_with("a.yml", "x: 1\n", "gitpost_x", "Title")
        client.calls.open_review.assert_called_once_with("gitpost_x", "main", "Title", "Body")
        assert review.id == 7

    def test_base_branch_overrides_client_branch(self):
        client = _client(branch="main")
        client.write_file_and_open_review("a.yml", "x", "gitpost_x", base_branch="master")
        client.calls.resolve_branch_sha.assert_called_once_with("master")
        assert client.calls.open_review.call_args[0][1] == "master"

    def test_failure_aborts_remaining_steps(self):
        client = _client()
        client.calls.create_branch.side_effect = FakeApiError("ref exists", status=422)

        with pytest.raises(CreateReviewError) as exc_info:
            client.write_file_and_open_review("a.yml", "x", "gitpost_x")

        assert exc_info.value.code == "STUB_CREATING_PR"
        assert exc_info.value.status == 422
        client.calls.commit_file.assert_not_called()
        client.calls.open_review.assert_not_called()


class InMemoryRepoClient(StubClient):
    """Stores committed files as base64 per (branch, path), as the provider APIs return them."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.files = {}

    def _fetch_file(self, path, ref):
        if (ref, path) not in self.files:
            raise FakeApiError("Not Found", status=404)
        return self.files[(ref, path)], "blob-sha"

    def _commit_file(self, path, content, branch, message):
        self.files[(branch, path)] = _b64(content)
        return CommitResult(sha="c1", path=path, branch=branch)

    def _resolve_branch_sha(self, branch):
        return "base-sha"

    def _create_branch(self, name, sha):
        pass

    def _open_review(self, source, target, title, body):
        return ReviewRequest(id=1, source_branch=source, target_branch=target)


FIELDS = {
    "name": "Zoë",
    "message": "First line\nSecond: with a colon\n- and a dash",
    "code": "007",
    "answer": "yes",
}


class TestWriteThenRead:
    @pytest.mark.parametrize("fmt, path", [("yml", "comments/1.yml"), ("json", "comments/1.json")])
    def test_committed_fields_read_back_unchanged(self, fmt, path):
        client = InMemoryRepoClient("owner", "site", token="tok", branch="main")

        client.write_file(path, serialize_fields(FIELDS, fmt))

        assert client.read_file(path) == FIELDS

    def test_review_branch_content_reads_back(self):
        client = InMemoryRepoClient("owner", "site", token="tok", branch="main")

        client.write_file_and_open_review("comments/1.yml", serialize_fields(FIELDS), "gitpost_abc")

        assert client.read_file("comments/1.yml", ref="gitpost_abc") == FIELDS
        with pytest.raises(ReadError):
            client.read_file("comments/1.yml")

    def test_full_response_keeps_raw_text(self):
        client = InMemoryRepoClient("owner", "site", token="tok", branch="main")
        raw = serialize_fields(FIELDS, "json")

        client.write_file("comments/1.json", raw)

        result = client.read_file("comments/1.json", full_response=True)
        assert result.raw == raw
        assert result.content == FIELDS
        assert result.sha == "blob-sha"


class TestIdentityAndInvitations:
    def test_get_current_user(self):
        client = _client()
        identity = Identity(service="stub", login="bot", email=None, name=None)
        client.calls.fetch_current_user.return_value = identity
        assert client.get_current_user() is identity

    def test_get_current_user_failure(self):
        client = _client()
        client.calls.fetch_current_user.side_effect = FakeApiError("Bad credentials", status=401)
        with pytest.raises(GetUserError) as exc_info:
            client.get_current_user()
        assert exc_info.value.code == "STUB_GET_USER"
        assert exc_info.value.status == 401

    def test_invitation_failures_raise_invitation_error(self):
        client = _client()
        client.calls.fetch_invitations.side_effect = FakeApiError("nope", status=500)
        client.calls.accept_invitation.side_effect = FakeApiError("nope", status=404)
        with pytest.raises(InvitationError):
            client.list_pending_invitations()
        with pytest.raises(InvitationError) as exc_info:
            client.accept_invitation(1)
        assert exc_info.value.code == "STUB_INVITATION"
