# tests/test_auth.py

from __future__ import annotations

import pytest

from caretask_client.auth import AuthenticationError, AuthService, RoleMismatchError
from caretask_client.models import CredentialPair, UserRole

from .fakes import make_response


def _auth_payload(role: str = "individual") -> dict:
    return {
        "message": "Login successful",
        "user": {
            "id": 12,
            "email": "ayse@example.com",
            "username": "ayse",
            "full_name": "Ayse Yilmaz",
            "role": role,
            "profile_picture": None,
            "date_joined": "2024-05-01T09:00:00Z",
        },
        "tokens": {"access": "access-1", "refresh": "refresh-1"},
    }


@pytest.fixture()
def auth(settings, http_client, store) -> AuthService:
    return AuthService(settings, http_client, store)


def test_login_persists_tokens_and_user(auth, session, store) -> None:
    session.queue("POST", "/users/login/", make_response(200, _auth_payload()))

    result = auth.login("  ayse ", "secret")

    assert session.calls_to("POST", "/users/login/")[0].json == {
        "email_or_username": "ayse",
        "password": "secret",
    }
    assert store.get_tokens() == CredentialPair(access="access-1", refresh="refresh-1")
    assert store.get_user() == result.user
    assert result.user.full_name == "Ayse Yilmaz"
    assert auth.is_authenticated()
    assert auth.get_auth_state().user == result.user


def test_login_error_uses_server_message(auth, session, store) -> None:
    session.queue("POST", "/users/login/", make_response(400, {"email_or_username": ["No such account"]}))

    with pytest.raises(AuthenticationError, match="No such account"):
        auth.login("ghost", "secret")
    assert store.get_access_token() is None


def test_login_error_falls_back_to_generic_message(auth, session) -> None:
    session.queue("POST", "/users/login/", make_response(500, text="oops"))

    with pytest.raises(AuthenticationError, match="Sign in failed"):
        auth.login("ayse", "secret")


def test_wrong_password_401_is_an_authentication_error(auth, session, store) -> None:
    session.queue("POST", "/users/login/", make_response(401, {"detail": "Invalid credentials"}))

    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        auth.login("ayse", "wrong")
    assert store.get_access_token() is None


def test_failed_login_keeps_previous_session_untouched(auth, session, store) -> None:
    store.save_tokens(CredentialPair(access="old-access", refresh="old-refresh"))
    session.queue("POST", "/users/login/", make_response(401, {"detail": "Invalid credentials"}))

    with pytest.raises(AuthenticationError):
        auth.login("ayse", "wrong")

    assert len(session.calls_to("POST", "/users/login/")) == 1
    assert session.calls_to("POST", "/users/token/refresh/") == []
    assert store.get_tokens() == CredentialPair(access="old-access", refresh="old-refresh")


def test_login_response_without_tokens_is_rejected(auth, session, store) -> None:
    payload = _auth_payload()
    payload.pop("tokens")
    session.queue("POST", "/users/login/", make_response(200, payload))

    with pytest.raises(AuthenticationError, match="Unexpected authentication response"):
        auth.login("ayse", "secret")
    assert not auth.is_authenticated()
    assert store.get_user() is None


def test_login_requires_credentials(auth, session) -> None:
    with pytest.raises(ValueError):
        auth.login("   ", "secret")
    assert session.calls == []


def test_login_with_wrong_role_signs_out(auth, session, store) -> None:
    session.queue("POST", "/users/login/", make_response(200, _auth_payload(role="responsible")))

    with pytest.raises(RoleMismatchError) as info:
        auth.login("ayse", "secret", expected_role=UserRole.SUPPORT_REQUIRED)

    assert info.value.actual_role == "responsible"
    assert store.get_access_token() is None
    assert store.get_user() is None


def test_legacy_user_type_maps_to_role(auth, session) -> None:
    payload = _auth_payload()
    payload["user"].pop("role")
    payload["user"]["user_type"] = "support_required"
    session.queue("POST", "/users/login/", make_response(200, payload))

    result = auth.login("ayse", "secret", expected_role="support_required")

    assert result.user.role == "support_required"


def test_register_sends_full_payload(auth, session, store) -> None:
    session.queue("POST", "/users/register/", make_response(201, _auth_payload(role="responsible")))

    auth.register("ayse", " Ayse@Example.com ", "Ayse Yilmaz", "responsible", "pw12345!", "pw12345!")

    sent = session.calls_to("POST", "/users/register/")[0].json
    assert sent["email"] == "ayse@example.com"
    assert sent["role"] == "responsible"
    assert sent["password_confirm"] == "pw12345!"
    assert store.get_refresh_token() == "refresh-1"


def test_register_without_tokens_does_not_sign_in(auth, session, store) -> None:
    payload = _auth_payload()
    payload.pop("tokens")
    session.queue("POST", "/users/register/", make_response(201, payload))

    result = auth.register("ayse", "ayse@example.com", "Ayse", "individual", "pw", "pw")

    assert result.tokens is None
    assert not auth.is_authenticated()


def test_register_validates_locally(auth, session) -> None:
    with pytest.raises(ValueError):
        auth.register("ayse", "a@b.c", "Ayse", "individual", "pw1", "pw2")
    with pytest.raises(ValueError):
        auth.register("ayse", "a@b.c", "Ayse", "admin", "pw", "pw")
    assert session.calls == []


def test_register_field_error(auth, session) -> None:
    session.queue("POST", "/users/register/", make_response(400, {"username": ["already taken"]}))

    with pytest.raises(AuthenticationError, match="already taken"):
        auth.register("ayse", "a@b.c", "Ayse", "individual", "pw", "pw")


def test_logout_clears_everything(auth, session, store) -> None:
    session.queue("POST", "/users/login/", make_response(200, _auth_payload()))
    auth.login("ayse", "secret")

    auth.logout()

    assert not auth.is_authenticated()
    assert auth.get_current_user() is None
    assert auth.get_auth_state().is_signed_in is False


def test_get_user_by_id(auth, session) -> None:
    session.queue("GET", "/users/5/", make_response(200, {"id": 5, "email": "e@x.y", "username": "emre"}))

    user = auth.get_user_by_id(5)

    assert user.id == 5
    assert user.role == ""
