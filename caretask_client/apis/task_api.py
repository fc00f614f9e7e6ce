from __future__ import annotations

from datetime import date as date_type
import logging
from typing import Any

from caretask_client.config import AppSettings
from caretask_client.http import ApiError, HttpClient, NetworkError
from caretask_client.models import Task, TaskNotification, TaskPage, TaskStatus, User

logger = logging.getLogger(__name__)


class TaskApi:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    @property
    def notifications_path(self) -> str:
        return self._settings.notifications_path

    def list_tasks(
        self,
        date: str | date_type | None = None,
        status: TaskStatus | str | None = None,
        assigned_to: int | None = None,
    ) -> TaskPage:
        params: dict[str, Any] = {}
        if date is not None:
            params["date"] = date.isoformat() if isinstance(date, date_type) else date
        if status is not None:
            params["status"] = TaskStatus(status).value
        if assigned_to is not None:
            params["assigned_to"] = assigned_to

        data = self._http_client.get("/tasks/", query=params or None)
        return TaskPage.from_payload(data)

    def create_task(self, data: dict[str, Any]) -> Task:
        missing = [name for name in ("title", "scheduled_date") if not str(data.get(name) or "").strip()]
        if missing:
            raise ValueError("Task fields are required: " + ", ".join(missing))

        created = self._http_client.post("/tasks/create/", data)
        logger.info("Created task %s", created.get("id"))
        return Task.from_payload(created)

    def update_task(self, task_id: int, data: dict[str, Any]) -> Task:
        return Task.from_payload(self._http_client.patch(f"/tasks/{int(task_id)}/update/", data))

    def delete_task(self, task_id: int) -> None:
        self._http_client.delete(f"/tasks/{int(task_id)}/delete/")
        logger.info("Deleted task %s", task_id)

    def start_task(self, task_id: int) -> Task:
        return self._run_action(task_id, "start")

    def complete_task(self, task_id: int) -> Task:
        return self._run_action(task_id, "complete")

    def cancel_task(self, task_id: int) -> Task:
        return self._run_action(task_id, "cancel")

    def _run_action(self, task_id: int, action: str) -> Task:
        data = self._http_client.post(f"/tasks/{int(task_id)}/{action}/")
        logger.info("Task %s -> %s", task_id, action)
        return Task.from_payload(data)

    def get_statistics(self) -> dict[str, Any]:
        return self._http_client.get("/tasks/statistics/")

    def get_user_statistics(self, user_id: int) -> dict[str, Any]:
        return self._http_client.get("/tasks/statistics/", query={"user_id": int(user_id)})

    def get_assignable_users(self) -> list[User]:
        data = self._http_client.get("/tasks/assignable-users/")
        items = (data.get("results") or []) if isinstance(data, dict) else data
        return [User.from_payload(item) for item in items]

    def get_today_completed_count(self, today: date_type | None = None) -> int:
        day = today or date_type.today()
        try:
            page = self.list_tasks(date=day, status=TaskStatus.COMPLETED)
        except (NetworkError, ApiError) as exc:
            logger.warning("Could not count completed tasks for %s: %s", day, exc)
            return 0
        return len(page.results)

    def check_notifications(self) -> TaskNotification:
        data = self._http_client.get(self._settings.notifications_path)
        if not isinstance(data, dict):
            return TaskNotification(has_new_task=False)
        return TaskNotification.from_payload(data)
