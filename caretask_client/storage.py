from __future__ import annotations

import json
import logging
import os
import threading

from msal_extensions import FilePersistence, FilePersistenceWithDataProtection
from msal_extensions.persistence import PersistenceNotFound

from caretask_client.models import CredentialPair, User

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user.json"


class CredentialStore:
    """Durable key-value storage for the credential pair and the signed-in user.

    Every key lives in its own file, so each write replaces exactly one value.
    An empty file means the key is absent.
    """

    def __init__(self, directory: str):
        self._directory = directory
        os.makedirs(directory, exist_ok=True)
        self._lock = threading.Lock()
        self._persistences = {
            key: self._build_persistence(os.path.join(directory, key))
            for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)
        }

    @property
    def directory(self) -> str:
        return self._directory

    @staticmethod
    def _build_persistence(path: str):
        try:
            return FilePersistenceWithDataProtection(path)
        except Exception:
            return FilePersistence(path)

    def _read(self, key: str) -> str | None:
        with self._lock:
            try:
                value = self._persistences[key].load()
            except PersistenceNotFound:
                return None
        return value or None

    def _write(self, key: str, value: str) -> None:
        with self._lock:
            self._persistences[key].save(value)

    def get_access_token(self) -> str | None:
        return self._read(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> str | None:
        return self._read(REFRESH_TOKEN_KEY)

    def set_access_token(self, token: str) -> None:
        self._write(ACCESS_TOKEN_KEY, token)

    def set_refresh_token(self, token: str) -> None:
        self._write(REFRESH_TOKEN_KEY, token)

    def save_tokens(self, tokens: CredentialPair) -> None:
        if not tokens.access or not tokens.refresh:
            raise ValueError("Both access and refresh tokens are required")
        self._write(REFRESH_TOKEN_KEY, tokens.refresh)
        self._write(ACCESS_TOKEN_KEY, tokens.access)
        logger.info("Stored credential pair")

    def get_tokens(self) -> CredentialPair | None:
        access = self.get_access_token()
        refresh = self.get_refresh_token()
        if not access or not refresh:
            return None
        return CredentialPair(access=access, refresh=refresh)

    def get_user(self) -> User | None:
        raw = self._read(USER_KEY)
        if not raw:
            return None
        try:
            return User.from_payload(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Stored user profile is unreadable: %s", exc)
            return None

    def save_user(self, user: User) -> None:
        self._write(USER_KEY, json.dumps(user.to_payload()))

    def clear(self) -> None:
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            self._write(key, "")
        logger.info("Cleared stored credentials")
