from __future__ import annotations

import requests

from caretask_client.apis import InvitationApi, TaskApi
from caretask_client.auth import AuthService
from caretask_client.config import AppSettings
from caretask_client.http import HttpClient
from caretask_client.logging_utils import configure_logging
from caretask_client.notifications import NewTaskCallback, NotificationPoller, TaskNotifier
from caretask_client.storage import CredentialStore


class CareTaskService:
    def __init__(
        self,
        auth: AuthService,
        tasks: TaskApi,
        invitations: InvitationApi,
        notifier: TaskNotifier,
        http_client: HttpClient,
    ):
        self._auth = auth
        self._tasks = tasks
        self._invitations = invitations
        self._notifier = notifier
        self._http_client = http_client

    @property
    def auth(self) -> AuthService:
        return self._auth

    @property
    def tasks(self) -> TaskApi:
        return self._tasks

    @property
    def invitations(self) -> InvitationApi:
        return self._invitations

    @property
    def notifier(self) -> TaskNotifier:
        return self._notifier

    def auth_state(self):
        return self._auth.get_auth_state()

    def sign_out(self) -> None:
        self.stop_watching()
        self._auth.logout()

    def watch_new_tasks(self, on_new_task: NewTaskCallback) -> None:
        self._notifier.start(on_new_task)

    def stop_watching(self) -> None:
        self._notifier.stop()

    def close(self) -> None:
        self._notifier.stop()
        self._http_client.close()


def build_service(
    settings: AppSettings | None = None,
    session: requests.Session | None = None,
    setup_logging: bool = False,
) -> CareTaskService:
    settings = settings or AppSettings.from_env()
    if setup_logging:
        configure_logging(settings.log_level)

    store = CredentialStore(settings.token_store_dir)
    http_client = HttpClient(settings, store, session=session)
    task_api = TaskApi(settings, http_client)
    return CareTaskService(
        auth=AuthService(settings, http_client, store),
        tasks=task_api,
        invitations=InvitationApi(http_client),
        notifier=NotificationPoller(
            task_api.check_notifications,
            interval_seconds=settings.poll_interval_seconds,
        ),
        http_client=http_client,
    )
