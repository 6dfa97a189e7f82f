"""No-op mail agent: the default when no mail provider is configured.

Entries are still committed and reviews still opened; nobody is emailed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitpost_notify.base import BaseMailAgent

if TYPE_CHECKING:
    from gitpost_notify.models import MailMessage


class NoOpMailAgent(BaseMailAgent):
    """Has no lists, so every thread looks unsubscribed and notify_all is a no-op."""

    def __init__(self, domain: str = "localhost"):
        self.domain = domain

    def get_list(self, address: str) -> str | None:
        return None

    def create_list(self, address: str) -> None:
        pass

    def add_member(self, list_address: str, email: str) -> None:
        pass

    def send(self, message: MailMessage) -> None:
        pass
