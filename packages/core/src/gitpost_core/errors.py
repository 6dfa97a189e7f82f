"""Typed errors raised at the HostingClient boundary.

Provider SDK exceptions (GithubException, requests.RequestException) never
leak past a hosting client: each operation catches them and re-raises one of
the classes below with a stable ``code`` the caller can branch on. The
provider's own message and HTTP status are kept on the instance so nothing
is lost in translation.
"""

from __future__ import annotations


class HostingError(Exception):
    """Base class for every error surfaced by a hosting client."""

    def __init__(self, code: str, message: str = "", status: int | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, status={self.status!r}, message={self.message!r})"


class MissingCredentialError(HostingError):
    def __init__(self, message: str = "Require an `oauth_token` or `token` option"):
        super().__init__("MISSING_CREDENTIAL", message)


class ReadError(HostingError):
    pass


class ParseError(HostingError):
    """The file was fetched and decoded but is not valid YAML/JSON.

    Not a subclass of ReadError: ``except ReadError`` must not catch it.
    """

    def __init__(self, message: str = "Error whilst parsing file"):
        super().__init__("PARSING_ERROR", message)


class WriteError(HostingError):
    pass


class CreateReviewError(HostingError):
    pass


class GetUserError(HostingError):
    pass


class InvitationError(HostingError):
    pass
