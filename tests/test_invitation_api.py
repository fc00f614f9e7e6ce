# tests/test_invitation_api.py

from __future__ import annotations

import pytest

from caretask_client.apis import InvitationApi
from caretask_client.http import ApiError
from caretask_client.models import CredentialPair, InvitationStatus

from .fakes import make_response


def _invitation(invitation_id: int = 1, status: str = "pending") -> dict:
    return {
        "id": invitation_id,
        "support_required_user": 4,
        "support_required_user_name": "Sude",
        "support_required_user_email": "sude@example.com",
        "responsible_email": "mom@example.com",
        "responsible_user": None,
        "status": status,
        "created_at": "2024-05-01T09:00:00Z",
        "accepted_at": None,
        "is_expired": False,
    }


@pytest.fixture()
def invitations(http_client) -> InvitationApi:
    return InvitationApi(http_client)


def test_invite_normalizes_email(invitations, session) -> None:
    session.queue("POST", "/otp/invite/", make_response(201, {"message": "sent", "invitation": _invitation()}))

    invitation = invitations.invite_responsible_person("  Mom@Example.com ")

    assert session.calls_to("POST", "/otp/invite/")[0].json == {"responsible_email": "mom@example.com"}
    assert invitation.status is InvitationStatus.PENDING


def test_invite_requires_email(invitations, session) -> None:
    with pytest.raises(ValueError):
        invitations.invite_responsible_person("   ")
    assert session.calls == []


def test_invite_rate_limited(invitations, session) -> None:
    session.queue("POST", "/otp/invite/", make_response(429, {"detail": "Slow down"}))

    with pytest.raises(ApiError) as info:
        invitations.invite_responsible_person("mom@example.com")
    assert info.value.status_code == 429


def test_list_and_resend(invitations, session) -> None:
    session.queue("GET", "/otp/invitations/", make_response(200, [_invitation(1), _invitation(2, "accepted")]))
    session.queue(
        "POST",
        "/otp/invitations/2/resend/",
        make_response(200, {"message": "resent", "invitation": _invitation(2)}),
    )

    listed = invitations.list_invitations()
    resent = invitations.resend_invitation(2)

    assert [i.status for i in listed] == [InvitationStatus.PENDING, InvitationStatus.ACCEPTED]
    assert resent.id == 2


def test_accept_invitation(invitations, session) -> None:
    session.queue("POST", "/otp/accept-invitation/", make_response(200, {"message": "accepted"}))

    assert invitations.accept_invitation("Mom@Example.com", " 123456 ") == {"message": "accepted"}
    assert session.calls_to("POST", "/otp/accept-invitation/")[0].json == {
        "email": "mom@example.com",
        "code": "123456",
    }


def test_invitations_use_the_refresh_contract(invitations, session, store) -> None:
    store.save_tokens(CredentialPair(access="old", refresh="r"))
    session.queue("GET", "/otp/invitations/", make_response(401), make_response(200, []))
    session.queue("POST", "/users/token/refresh/", make_response(200, {"access": "new"}))

    assert invitations.list_invitations() == []
    assert session.calls_to("GET", "/otp/invitations/")[1].authorization == "Bearer new"
