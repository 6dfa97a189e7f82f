from __future__ import annotations

import logging

from gitpost_core.errors import InvitationError
from gitpost_core.hosting.base import BaseHostingClient
from gitpost_core.models import Invitation

logger = logging.getLogger(__name__)


def connect_repository(client: BaseHostingClient, owner: str, repository: str) -> Invitation:
    """Accept the pending collaboration invitation for ``owner/repository``.

    Raises InvitationError("Invitation not found") when the bot has not been
    invited to that repository.
    """
    full_name = f"{owner}/{repository}".lower()
    for invitation in client.list_pending_invitations():
        if invitation.repository.lower() == full_name:
            client.accept_invitation(invitation.id)
            logger.info("Accepted invitation %s to %s", invitation.id, invitation.repository)
            return invitation
    raise InvitationError(f"{client.SERVICE.upper()}_INVITATION", "Invitation not found", status=404)
