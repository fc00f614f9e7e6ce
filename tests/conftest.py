# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from caretask_client.config import AppSettings
from caretask_client.http import HttpClient
from caretask_client.storage import CredentialStore

from .fakes import BASE_URL, FakeSession


@pytest.fixture()
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        base_url=BASE_URL,
        login_path="/users/login/",
        register_path="/users/register/",
        refresh_path="/users/token/refresh/",
        notifications_path="/tasks/notifications/",
        timeout_seconds=10,
        poll_interval_seconds=5.0,
        token_store_dir=str(tmp_path / "store"),
    )


@pytest.fixture()
def store(settings: AppSettings) -> CredentialStore:
    return CredentialStore(settings.token_store_dir)


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def http_client(settings: AppSettings, store: CredentialStore, session: FakeSession) -> HttpClient:
    return HttpClient(settings, store, session=session)
