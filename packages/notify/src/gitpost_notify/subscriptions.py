"""Thread → mailing list mapping.

The list address is derived from the thread key, never stored, so the same
thread always resolves to the same list and "at most one list per thread"
holds without any local bookkeeping. The lookup-then-create in subscribe()
is not atomic: two first subscribers racing on a new thread both reach
create_list(), and agents must treat "already exists" as success.
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

from gitpost_notify.base import BaseMailAgent
from gitpost_notify.notification import NotificationComposer

if TYPE_CHECKING:
    from gitpost_core.models import Thread

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    def __init__(self, agent: BaseMailAgent, composer: NotificationComposer | None = None):
        self.agent = agent
        self.composer = composer

    def list_address(self, thread: Thread) -> str:
        """Return ``md5("owner-repository-entry_id")@domain`` for ``thread``.

        The hyphen-joined key is ambiguous when a part itself contains a hyphen:
        ("a-b", "c", "d") and ("a", "b-c", "d") share a list. The derivation is
        kept as is so addresses of lists created earlier still resolve.
        """
        compound_id = hashlib.md5(f"{thread.owner}-{thread.repository}-{thread.entry_id}".encode()).hexdigest()
        return f"{compound_id}@{self.agent.domain}"

    def subscribe(self, thread: Thread, email: str) -> None:
        address = self.list_address(thread)
        if self.agent.get_list(address) is None:
            self.agent.create_list(address)
            logger.info("Created mailing list %s for %s", address, thread)
        self.agent.add_member(address, email)

    def notify_all(self, thread: Thread, fields: dict, options: dict, site_name: str | None = None) -> None:
        """Email everyone subscribed to ``thread``; a thread without a list is a no-op."""
        address = self.agent.get_list(self.list_address(thread))
        if not address:
            logger.debug("No subscribers for %s", thread)
            return
        composer = self.composer or NotificationComposer(self.agent, f"noreply@{self.agent.domain}")
        composer.send(address, fields, options, site_name)
