from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class UserRole(str, Enum):
    INDIVIDUAL = "individual"
    RESPONSIBLE = "responsible"
    SUPPORT_REQUIRED = "support_required"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CredentialPair:
    access: str
    refresh: str


@dataclass(frozen=True)
class User:
    id: int
    email: str
    username: str
    full_name: str = ""
    role: str = ""
    profile_picture: str | None = None
    date_joined: str | None = None

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "User":
        # Older backend builds send ``user_type`` instead of ``role``.
        role = payload.get("role") or payload.get("user_type") or ""
        return User(
            id=int(payload["id"]),
            email=str(payload.get("email") or ""),
            username=str(payload.get("username") or ""),
            full_name=str(payload.get("full_name") or ""),
            role=str(role),
            profile_picture=payload.get("profile_picture"),
            date_joined=payload.get("date_joined"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "profile_picture": self.profile_picture,
            "date_joined": self.date_joined,
        }


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: CredentialPair | None
    message: str = ""

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "AuthResult":
        raw_tokens = payload.get("tokens")
        tokens = None
        if isinstance(raw_tokens, dict) and raw_tokens.get("access") and raw_tokens.get("refresh"):
            tokens = CredentialPair(access=str(raw_tokens["access"]), refresh=str(raw_tokens["refresh"]))
        return AuthResult(
            user=User.from_payload(payload["user"]),
            tokens=tokens,
            message=str(payload.get("message") or ""),
        )


@dataclass(frozen=True)
class AuthState:
    is_signed_in: bool
    user: User | None = None


@dataclass(frozen=True)
class Task:
    id: int
    title: str
    status: TaskStatus
    scheduled_date: str
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = None
    lottie_animation: str | None = None
    assigned_to: int | None = None
    created_by: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "Task":
        return Task(
            id=int(payload["id"]),
            title=str(payload.get("title") or ""),
            status=TaskStatus(payload.get("status") or TaskStatus.PENDING.value),
            scheduled_date=str(payload.get("scheduled_date") or ""),
            start_time=payload.get("start_time"),
            end_time=payload.get("end_time"),
            description=payload.get("description"),
            lottie_animation=payload.get("lottie_animation"),
            assigned_to=payload.get("assigned_to"),
            created_by=payload.get("created_by"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class TaskPage:
    count: int
    results: list[Task]
    next: str | None = None
    previous: str | None = None

    @staticmethod
    def from_payload(payload: dict[str, Any] | list[Any]) -> "TaskPage":
        if isinstance(payload, list):
            tasks = [Task.from_payload(item) for item in payload]
            return TaskPage(count=len(tasks), results=tasks)

        tasks = [Task.from_payload(item) for item in payload.get("results") or []]
        return TaskPage(
            count=int(payload.get("count", len(tasks))),
            results=tasks,
            next=payload.get("next"),
            previous=payload.get("previous"),
        )


@dataclass(frozen=True)
class TaskNotification:
    has_new_task: bool
    task: Task | None = None

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "TaskNotification":
        raw_task = payload.get("task")
        task = Task.from_payload(raw_task) if isinstance(raw_task, dict) else None
        return TaskNotification(has_new_task=bool(payload.get("has_new_task")), task=task)


@dataclass(frozen=True)
class Invitation:
    id: int
    responsible_email: str
    status: InvitationStatus
    support_required_user: int | None = None
    support_required_user_name: str = ""
    support_required_user_email: str = ""
    responsible_user: int | None = None
    created_at: str | None = None
    accepted_at: str | None = None
    is_expired: bool = False

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "Invitation":
        return Invitation(
            id=int(payload["id"]),
            responsible_email=str(payload.get("responsible_email") or ""),
            status=InvitationStatus(payload.get("status") or InvitationStatus.PENDING.value),
            support_required_user=payload.get("support_required_user"),
            support_required_user_name=str(payload.get("support_required_user_name") or ""),
            support_required_user_email=str(payload.get("support_required_user_email") or ""),
            responsible_user=payload.get("responsible_user"),
            created_at=payload.get("created_at"),
            accepted_at=payload.get("accepted_at"),
            is_expired=bool(payload.get("is_expired", False)),
        )


@dataclass
class PendingRequest:
    """A single outbound request, kept so it can be replayed after a token refresh.

    ``retried`` belongs to this request only; it is never shared between requests.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json_body: Any = None
    retried: bool = False

    def with_bearer(self, token: str | None) -> None:
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        else:
            self.headers.pop("Authorization", None)
