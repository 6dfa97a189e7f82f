"""Abstract mail transport interface.

Any provider with mailing lists (Mailgun today) implements this interface.
The subscription registry depends on BaseMailAgent, not on a concrete
provider, so transports are swappable without touching thread logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitpost_notify.models import MailMessage


class NotificationError(Exception):
    """A mail provider call failed. Logged by callers, never surfaced to submitters."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class BaseMailAgent(ABC):
    """Mailing-list capable transport, keyed by one sending domain.

    Implementations hold no local state about lists or members; the
    provider's list API is the only source of truth.
    """

    domain: str = ""

    @abstractmethod
    def get_list(self, address: str) -> str | None:
        """Return the list address if the list exists, else None."""

    @abstractmethod
    def create_list(self, address: str) -> None:
        """Create a mailing list. An already existing list is a success."""

    @abstractmethod
    def add_member(self, list_address: str, email: str) -> None:
        """Add ``email`` to a list. An existing member is a success."""

    @abstractmethod
    def send(self, message: MailMessage) -> None:
        """Dispatch one message. Raises NotificationError on failure."""

    def close(self) -> None:
        """Release any resources held by the agent (HTTP sessions).

        Optional. The default is a no-op so callers can always call close() safely.
        """
