from __future__ import annotations

import logging
from typing import Any

from caretask_client.config import AppSettings
from caretask_client.http import ApiError, HttpClient
from caretask_client.models import AuthResult, AuthState, User, UserRole
from caretask_client.storage import CredentialStore

logger = logging.getLogger(__name__)

_LOGIN_ERROR_FIELDS = ("email_or_username", "email", "password", "non_field_errors")
_REGISTER_ERROR_FIELDS = ("email", "username", "password", "password_confirm", "role", "non_field_errors")


class AuthenticationError(RuntimeError):
    pass


class RoleMismatchError(AuthenticationError):
    def __init__(self, expected_role: str, actual_role: str):
        super().__init__(
            f"This account is a '{actual_role}' account; use the '{expected_role}' sign in instead"
        )
        self.expected_role = expected_role
        self.actual_role = actual_role


class AuthService:
    def __init__(self, settings: AppSettings, http_client: HttpClient, store: CredentialStore):
        self._settings = settings
        self._http_client = http_client
        self._store = store

    def login(
        self,
        identifier: str,
        password: str,
        expected_role: UserRole | str | None = None,
    ) -> AuthResult:
        identifier = identifier.strip()
        if not identifier or not password:
            raise ValueError("Email or username and password are required")

        try:
            data = self._http_client.post(
                self._settings.login_path,
                {"email_or_username": identifier, "password": password},
                authenticate=False,
            )
        except ApiError as exc:
            raise AuthenticationError(exc.user_message(_LOGIN_ERROR_FIELDS, "Sign in failed")) from exc

        result = self._persist(data)
        if result.tokens is None:
            raise AuthenticationError("Unexpected authentication response")
        logger.info("Signed in as user %s", result.user.id)

        if expected_role is not None:
            expected = UserRole(expected_role).value
            if result.user.role != expected:
                self.logout()
                raise RoleMismatchError(expected, result.user.role)
        return result

    def register(
        self,
        username: str,
        email: str,
        full_name: str,
        role: UserRole | str,
        password: str,
        password_confirm: str,
    ) -> AuthResult:
        role_value = UserRole(role).value
        if password != password_confirm:
            raise ValueError("Passwords do not match")

        payload = {
            "username": username.strip(),
            "email": email.strip().lower(),
            "full_name": full_name.strip(),
            "role": role_value,
            "password": password,
            "password_confirm": password_confirm,
        }
        try:
            data = self._http_client.post(self._settings.register_path, payload, authenticate=False)
        except ApiError as exc:
            raise AuthenticationError(
                exc.user_message(_REGISTER_ERROR_FIELDS, "Registration failed")
            ) from exc

        result = self._persist(data)
        logger.info("Registered user %s", result.user.id)
        return result

    def _persist(self, data: Any) -> AuthResult:
        if not isinstance(data, dict) or not isinstance(data.get("user"), dict):
            raise AuthenticationError("Unexpected authentication response")

        result = AuthResult.from_payload(data)
        if result.tokens is not None:
            self._store.save_tokens(result.tokens)
            self._store.save_user(result.user)
        return result

    def logout(self) -> None:
        self._store.clear()
        logger.info("Signed out")

    def get_current_user(self) -> User | None:
        return self._store.get_user()

    def is_authenticated(self) -> bool:
        return self._store.get_access_token() is not None

    def get_auth_state(self) -> AuthState:
        if not self.is_authenticated():
            return AuthState(is_signed_in=False)
        return AuthState(is_signed_in=True, user=self.get_current_user())

    def get_user_by_id(self, user_id: int) -> User:
        data = self._http_client.get(f"/users/{int(user_id)}/")
        if not isinstance(data, dict):
            raise RuntimeError("User API did not return a profile")
        return User.from_payload(data)
