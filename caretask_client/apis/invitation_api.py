from __future__ import annotations

import logging
from typing import Any

from caretask_client.http import HttpClient
from caretask_client.models import Invitation

logger = logging.getLogger(__name__)


class InvitationApi:
    def __init__(self, http_client: HttpClient):
        self._http_client = http_client

    def invite_responsible_person(self, responsible_email: str) -> Invitation:
        email = responsible_email.strip().lower()
        if not email:
            raise ValueError("Responsible person email is required")

        data = self._http_client.post("/otp/invite/", {"responsible_email": email})
        logger.info("Invitation sent to %s", email)
        return Invitation.from_payload(data["invitation"])

    def accept_invitation(self, email: str, code: str) -> dict[str, Any]:
        return self._http_client.post(
            "/otp/accept-invitation/",
            {"email": email.strip().lower(), "code": code.strip()},
        )

    def list_invitations(self) -> list[Invitation]:
        data = self._http_client.get("/otp/invitations/")
        items = (data.get("results") or []) if isinstance(data, dict) else data
        return [Invitation.from_payload(item) for item in items]

    def resend_invitation(self, invitation_id: int) -> Invitation:
        data = self._http_client.post(f"/otp/invitations/{int(invitation_id)}/resend/")
        return Invitation.from_payload(data["invitation"])
