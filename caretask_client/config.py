from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


class ConfigurationError(ValueError):
    pass


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_MAX_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class AppSettings:
    base_url: str
    login_path: str
    register_path: str
    refresh_path: str
    notifications_path: str
    timeout_seconds: int
    poll_interval_seconds: float
    token_store_dir: str
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "AppSettings":
        _load_dotenv_if_present()

        base_url = os.getenv("CARETASK_BASE_URL", "http://localhost:8000/api").strip().rstrip("/")
        login_path = os.getenv("CARETASK_LOGIN_PATH", "/users/login/").strip()
        register_path = os.getenv("CARETASK_REGISTER_PATH", "/users/register/").strip()
        refresh_path = os.getenv("CARETASK_REFRESH_PATH", "/users/token/refresh/").strip()
        notifications_path = os.getenv("CARETASK_NOTIFICATIONS_PATH", "/tasks/notifications/").strip()

        timeout_seconds = _parse_number("CARETASK_TIMEOUT_SECONDS", "10", int)
        poll_interval_seconds = _parse_number("CARETASK_POLL_INTERVAL_SECONDS", "5", float)

        default_store_dir = os.path.join(
            os.getenv("LOCALAPPDATA", os.path.join(os.path.expanduser("~"), ".caretask")),
            "CareTaskClient",
        )
        token_store_dir = os.getenv("CARETASK_TOKEN_STORE_DIR", default_store_dir).strip()
        log_level = os.getenv("CARETASK_LOG_LEVEL", "INFO").strip().upper()

        settings = AppSettings(
            base_url=base_url,
            login_path=login_path,
            register_path=register_path,
            refresh_path=refresh_path,
            notifications_path=notifications_path,
            timeout_seconds=timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            token_store_dir=token_store_dir,
            log_level=log_level,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError("CARETASK_BASE_URL must start with http:// or https://")

        path_fields = {
            "CARETASK_LOGIN_PATH": self.login_path,
            "CARETASK_REGISTER_PATH": self.register_path,
            "CARETASK_REFRESH_PATH": self.refresh_path,
            "CARETASK_NOTIFICATIONS_PATH": self.notifications_path,
        }
        invalid_paths = [name for name, value in path_fields.items() if not value.startswith("/")]
        if invalid_paths:
            raise ConfigurationError(
                "Endpoint paths must start with '/': " + ", ".join(invalid_paths)
            )

        if self.timeout_seconds <= 0 or self.timeout_seconds > _MAX_TIMEOUT_SECONDS:
            raise ConfigurationError(
                f"CARETASK_TIMEOUT_SECONDS must be between 1 and {_MAX_TIMEOUT_SECONDS}"
            )

        if self.poll_interval_seconds <= 0:
            raise ConfigurationError("CARETASK_POLL_INTERVAL_SECONDS must be greater than 0")

        if not self.token_store_dir:
            raise ConfigurationError("CARETASK_TOKEN_STORE_DIR must not be empty")

        if self.log_level not in _VALID_LOG_LEVELS:
            raise ConfigurationError(
                "CARETASK_LOG_LEVEL must be one of: " + ", ".join(_VALID_LOG_LEVELS)
            )


def _parse_number(name: str, default: str, kind):
    raw = os.getenv(name, default).strip()
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _load_dotenv_if_present(file_name: str = ".env") -> None:
    for candidate in _candidate_env_files(file_name):
        if candidate.is_file():
            _load_env_file(candidate)


def _candidate_env_files(file_name: str) -> list[Path]:
    """Explicit ``CARETASK_ENV_FILE`` first, then the working directory, then the checkout root."""
    candidates: list[Path] = []
    explicit = os.getenv("CARETASK_ENV_FILE", "").strip()
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(Path.cwd() / file_name)
    candidates.append(Path(__file__).resolve().parent.parent / file_name)

    # Same file reached twice (cwd == checkout root) is read once.
    unique: dict[str, Path] = {}
    for path in candidates:
        unique.setdefault(str(path.resolve()), path)
    return list(unique.values())


def _load_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return

    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        # Real environment variables win over the file.
        if key:
            os.environ.setdefault(key, value.strip('"').strip("'"))
