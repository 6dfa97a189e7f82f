from __future__ import annotations

import html
import logging

from gitpost_notify.base import BaseMailAgent, NotificationError
from gitpost_notify.models import MailMessage

logger = logging.getLogger(__name__)

# Substituted per recipient by the mail provider; must reach it untouched.
UNSUBSCRIBE_PLACEHOLDER = "%mailing_list_unsubscribe_url%"

_TEMPLATE = """\
<html>
  <body>
    Dear human,<br>
    <br>
    Someone replied to a comment you subscribed to{site}.<br>
    <br>
    {link}If you do not wish to receive any further notifications for this thread, \
<a href="{unsubscribe}">click here</a>.<br>
    <br>
    #ftw,<br>
    -- <a href="https://github.com/gitpost/gitpost">gitpost</a>
  </body>
</html>
"""


class NotificationComposer:
    """Renders the fixed "new reply" email and hands it to a mail agent."""

    def __init__(self, agent: BaseMailAgent, from_address: str, from_name: str = "gitpost"):
        self.agent = agent
        self.from_address = from_address
        self.from_name = from_name

    def build_message(self, fields: dict, options: dict, site_name: str | None = None) -> str:
        site = f" on <strong>{html.escape(site_name)}</strong>" if site_name else ""
        origin = (options or {}).get("origin")
        link = f'<a href="{html.escape(origin, quote=True)}">Click here</a> to see it. ' if origin else ""
        return _TEMPLATE.format(site=site, link=link, unsubscribe=UNSUBSCRIBE_PLACEHOLDER)

    @staticmethod
    def subject(site_name: str | None) -> str:
        return f'New reply on "{site_name}"' if site_name else "New reply"

    def send(self, recipient: str, fields: dict, options: dict, site_name: str | None = None) -> None:
        """Send one notification. Failures are logged; nothing is raised."""
        message = MailMessage(
            sender=f"{self.from_name} <{self.from_address}>",
            to=recipient,
            subject=self.subject(site_name),
            html=self.build_message(fields, options, site_name),
        )
        try:
            self.agent.send(message)
        except NotificationError as e:
            logger.error("Notification to %s failed: %s", recipient, e)
