"""MailgunAgent: mailing lists and delivery through the Mailgun HTTP API.

The Mailgun list is the subscription record. One message to the list
address reaches every member, and Mailgun substitutes
``%mailing_list_unsubscribe_url%`` per recipient. Member adds use
``upsert=yes`` and a duplicate list create counts as success.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from gitpost_notify.base import BaseMailAgent, NotificationError
from gitpost_notify.models import MailMessage

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.mailgun.net/v3"

_TIMEOUT = 30
_DUPLICATE_MARKERS = ("duplicate", "already exists")


class MailgunAgent(BaseMailAgent):
    def __init__(self, api_key: str, domain: str, api_base_url: str = DEFAULT_API_BASE_URL):
        self.domain = domain
        self._base = api_base_url.rstrip("/")
        self._session = requests.Session()
        self._session.auth = ("api", api_key)

    def _call(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            return self._session.request(method, f"{self._base}{path}", timeout=_TIMEOUT, **kwargs)
        except requests.RequestException as e:
            raise NotificationError(f"Mailgun {method} {path} failed: {e}") from e

    @staticmethod
    def _check(resp: requests.Response, what: str) -> None:
        if resp.status_code >= 400:
            raise NotificationError(f"Mailgun {what} failed ({resp.status_code}): {resp.text[:200]}", resp.status_code)

    def get_list(self, address: str) -> str | None:
        resp = self._call("GET", f"/lists/{quote(address)}")
        if resp.status_code == 404:
            return None
        self._check(resp, "list lookup")
        return resp.json().get("list", {}).get("address")

    def create_list(self, address: str) -> None:
        resp = self._call("POST", "/lists", data={"address": address})
        if resp.status_code == 400 and any(m in resp.text.lower() for m in _DUPLICATE_MARKERS):
            # Another subscriber created it between our lookup and this call.
            logger.debug("Mailing list %s already exists", address)
            return
        self._check(resp, "list create")

    def add_member(self, list_address: str, email: str) -> None:
        resp = self._call(
            "POST",
            f"/lists/{quote(list_address)}/members",
            data={"address": email, "upsert": "yes"},
        )
        self._check(resp, "member add")

    def send(self, message: MailMessage) -> None:
        resp = self._call(
            "POST",
            f"/{self.domain}/messages",
            data={"from": message.sender, "to": message.to, "subject": message.subject, "html": message.html},
        )
        self._check(resp, "message send")
        logger.info("Sent %r to %s", message.subject, message.to)

    def close(self) -> None:
        self._session.close()
