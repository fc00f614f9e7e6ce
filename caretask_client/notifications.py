"""
Background check for newly assigned tasks.

Callers depend on ``TaskNotifier`` only, so the polling loop below can be
swapped for a push subscription without touching them.
"""

from __future__ import annotations

from enum import Enum
import logging
import threading
import time
from typing import Callable, Protocol

from caretask_client.http import ApiError, NetworkError, SessionExpiredError
from caretask_client.models import Task, TaskNotification

logger = logging.getLogger(__name__)

NewTaskCallback = Callable[[Task], None]


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class TaskNotifier(Protocol):
    @property
    def state(self) -> PollerState: ...

    def start(self, on_new_task: NewTaskCallback) -> None: ...

    def stop(self) -> None: ...


class NotificationPoller:
    """Fixed-cadence poller for the "new task" endpoint.

    One daemon thread per running loop; ``start`` always retires the previous
    loop first, so there is never more than one active timer. Ticks run
    sequentially in that thread: a slow query delays nothing but its own
    slot, and slots that elapse while it runs are skipped rather than queued.
    """

    def __init__(
        self,
        check: Callable[[], TaskNotification],
        interval_seconds: float = 5.0,
        join_timeout_seconds: float = 2.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than 0")
        self._check = check
        self._interval_seconds = float(interval_seconds)
        self._join_timeout_seconds = join_timeout_seconds
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def state(self) -> PollerState:
        with self._lock:
            thread = self._thread
            stop_event = self._stop_event
        if thread is None or stop_event is None or stop_event.is_set() or not thread.is_alive():
            return PollerState.IDLE
        return PollerState.POLLING

    def start(self, on_new_task: NewTaskCallback) -> None:
        with self._lock:
            previous = self._detach_locked()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event, on_new_task),
                daemon=True,
                name="task-notification-poller",
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()

        # The previous loop is not joined; it exits after any in-flight check.
        logger.info(
            "Notification polling %s (every %.1fs)",
            "restarted" if previous is not None else "started",
            self._interval_seconds,
        )

    def stop(self) -> None:
        with self._lock:
            previous = self._detach_locked()
        if previous is None:
            return
        self._join(previous)
        logger.info("Notification polling stopped")

    def _detach_locked(self) -> threading.Thread | None:
        thread = self._thread
        if self._stop_event is not None:
            self._stop_event.set()
        self._thread = None
        self._stop_event = None
        return thread

    def _join(self, thread: threading.Thread | None) -> None:
        # stop() may be called from the callback, i.e. from the loop thread itself.
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=self._join_timeout_seconds)

    def _run(self, stop_event: threading.Event, on_new_task: NewTaskCallback) -> None:
        next_tick = time.monotonic() + self._interval_seconds
        last_task_id: int | None = None

        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            try:
                notification = self._check()
            except SessionExpiredError:
                logger.warning("Session expired; notification polling stopped")
                stop_event.set()
                return
            except (NetworkError, ApiError) as exc:
                logger.warning("Notification check failed, skipping tick: %s", exc)
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Malformed notification payload, skipping tick: %s", exc)
            except Exception:
                logger.exception("Notification check raised, skipping tick")
            else:
                # A result that lands after stop() is discarded.
                if not stop_event.is_set():
                    last_task_id = self._deliver(notification, last_task_id, on_new_task)

            next_tick = self._advance(next_tick)

    def _deliver(
        self,
        notification: TaskNotification,
        last_task_id: int | None,
        on_new_task: NewTaskCallback,
    ) -> int | None:
        if not notification.has_new_task:
            return None
        task = notification.task
        if task is None:
            logger.debug("New task flagged without a payload")
            return last_task_id
        if task.id == last_task_id:
            return last_task_id

        try:
            on_new_task(task)
        except Exception:
            logger.exception("New task callback failed task_id=%s", task.id)
        return task.id

    def _advance(self, next_tick: float) -> float:
        next_tick += self._interval_seconds
        now = time.monotonic()
        if next_tick <= now:
            skipped = int((now - next_tick) // self._interval_seconds) + 1
            logger.debug("Notification check overran; skipping %d tick(s)", skipped)
            next_tick += skipped * self._interval_seconds
        return next_tick
