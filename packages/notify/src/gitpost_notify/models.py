"""Mail data models.

Kept free of gitpost_core imports so the transport layer can be used on its own.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MailMessage:
    """One outbound message handed to a mail agent.

    ``to`` is usually a mailing-list address; the provider fans it out to
    every member.
    """

    sender: str  # "Name <address>"
    to: str
    subject: str
    html: str
