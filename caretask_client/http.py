from __future__ import annotations

import logging
from typing import Any, Iterable

import requests

from caretask_client.config import AppSettings
from caretask_client.models import PendingRequest
from caretask_client.storage import CredentialStore

logger = logging.getLogger(__name__)

_UNAUTHORIZED = 401


class ClientError(RuntimeError):
    pass


class NetworkError(ClientError):
    """No response was received (timeout, DNS failure, refused connection)."""


class ApiError(ClientError):
    def __init__(self, status_code: int, payload: Any, message: str | None = None):
        super().__init__(message or f"HTTP {status_code}: {_preview(payload)}")
        self.status_code = status_code
        self.payload = payload

    def user_message(self, fields: Iterable[str] = (), default: str = "Request failed") -> str:
        return extract_error_message(self.payload, fields, default)


class SessionExpiredError(ClientError):
    """The refresh token was rejected; the user has to sign in again."""


class NoRefreshTokenError(SessionExpiredError):
    def __init__(self, payload: Any = None):
        super().__init__("Unauthorized and no refresh token is stored")
        self.status_code = _UNAUTHORIZED
        self.payload = payload


def extract_error_message(payload: Any, fields: Iterable[str] = (), default: str = "Request failed") -> str:
    if not isinstance(payload, dict):
        return default

    detail = payload.get("detail")
    if detail:
        return str(detail)

    for name in fields:
        value = payload.get(name)
        if isinstance(value, list):
            value = value[0] if value else None
        if value:
            return str(value)
    return default


def _preview(payload: Any) -> str:
    return str(payload)[:500]


class HttpClient:
    def __init__(
        self,
        settings: AppSettings,
        store: CredentialStore,
        session: requests.Session | None = None,
    ):
        self._settings = settings
        self._store = store
        self._session = session if session is not None else requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    @property
    def store(self) -> CredentialStore:
        return self._store

    def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, query=query)

    def post(self, path: str, body: Any = None, authenticate: bool = True) -> Any:
        return self.request("POST", path, body=body, authenticate=authenticate)

    def put(self, path: str, body: Any = None) -> Any:
        return self.request("PUT", path, body=body)

    def patch(self, path: str, body: Any = None) -> Any:
        return self.request("PATCH", path, body=body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        query: dict[str, Any] | None = None,
        authenticate: bool = True,
    ) -> Any:
        pending = PendingRequest(
            method=method.upper(),
            url=self._build_url(path),
            params=self._clean_query(query),
            json_body=body,
        )
        if authenticate:
            # Re-read on every call: a concurrent refresh may have replaced the token.
            pending.with_bearer(self._store.get_access_token())

        response = self._send(pending)
        # Sign-in routes pass authenticate=False: their 401 means bad credentials.
        if response.status_code == _UNAUTHORIZED and authenticate and not pending.retried:
            return self._refresh_and_replay(pending, response)
        return self._handle_response(response)

    def close(self) -> None:
        self._session.close()

    def _refresh_and_replay(self, pending: PendingRequest, response: requests.Response) -> Any:
        pending.retried = True

        refresh_token = self._store.get_refresh_token()
        if not refresh_token:
            original = self._to_api_error(response)
            self._store.clear()
            raise NoRefreshTokenError(original.payload) from original

        access_token = self._refresh_access_token(refresh_token)
        pending.with_bearer(access_token)
        logger.debug("Replaying %s %s after token refresh", pending.method, pending.url)
        return self._handle_response(self._send(pending))

    def _refresh_access_token(self, refresh_token: str) -> str:
        url = self._build_url(self._settings.refresh_path)
        try:
            response = self._session.post(
                url,
                json={"refresh": refresh_token},
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as exc:
            self._store.clear()
            raise SessionExpiredError(f"Token refresh failed: {exc}") from exc

        if not response.ok:
            error = self._to_api_error(response)
            self._store.clear()
            raise SessionExpiredError(f"Token refresh rejected: HTTP {response.status_code}") from error

        data = self._decode(response)
        access_token = data.get("access") if isinstance(data, dict) else None
        if not access_token:
            self._store.clear()
            raise SessionExpiredError("Token refresh response did not include an access token")

        self._store.set_access_token(str(access_token))
        rotated = data.get("refresh")
        if rotated:
            self._store.set_refresh_token(str(rotated))
        logger.info("Refreshed access token%s", " (refresh token rotated)" if rotated else "")
        return str(access_token)

    def _send(self, pending: PendingRequest) -> requests.Response:
        logger.debug("%s %s", pending.method, pending.url)
        try:
            response = self._session.request(
                pending.method,
                pending.url,
                headers=dict(pending.headers),
                params=pending.params,
                json=pending.json_body,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"{pending.method} {pending.url} failed: {exc}") from exc
        logger.debug("%s %s", response.status_code, pending.url)
        return response

    def _handle_response(self, response: requests.Response) -> Any:
        if response.ok:
            return self._decode(response)
        raise self._to_api_error(response)

    def _to_api_error(self, response: requests.Response) -> ApiError:
        payload = self._decode(response)
        if isinstance(payload, str):
            payload = payload[:500]
        return ApiError(status_code=response.status_code, payload=payload)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self._settings.base_url}{path}"

    @staticmethod
    def _clean_query(query: dict[str, Any] | None) -> dict[str, Any] | None:
        if not query:
            return None
        cleaned = {key: value for key, value in query.items() if value is not None}
        return cleaned or None
