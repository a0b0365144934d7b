"""
Session lifecycle notifications.

The ledger publishes through a ``NotificationPort`` handed to it at
construction. ``ListenerNotifier`` fans events out to registered callables,
on a bounded thread pool when one is supplied, and logs and drops listener
failures so a broken subscriber can never fail or stall ``finish``.
"""
from __future__ import annotations

import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Protocol

from studio.core.logging import get_logger

logger = get_logger("notifications")

SESSION_COMPLETED = "session:completed"


@dataclass(frozen=True)
class SessionCompletedEvent:
    session_id: str
    status: str
    duration: int
    completed_at: int
    message_count: int

    name: ClassVar[str] = SESSION_COMPLETED

    def to_payload(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "status": self.status,
            "duration": self.duration,
            "completedAt": self.completed_at,
            "messageCount": self.message_count,
        }


Listener = Callable[[SessionCompletedEvent], None]


class NotificationPort(Protocol):
    def publish(self, event: SessionCompletedEvent) -> None: ...


class NullNotifier:
    """Discards every event."""

    def publish(self, event: SessionCompletedEvent) -> None:
        """No-op publish."""


class ListenerNotifier:
    def __init__(self, executor: Executor | None = None) -> None:
        self._executor = executor
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @classmethod
    def with_thread_pool(cls, max_workers: int) -> "ListenerNotifier":
        return cls(ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify"))

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, event: SessionCompletedEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            if self._executor is None:
                self._deliver(listener, event)
                continue
            try:
                self._executor.submit(self._deliver, listener, event)
            except RuntimeError as exc:
                # Executor already shut down
                logger.warning(
                    "notification_dropped",
                    event_name=event.name,
                    session_id=event.session_id,
                    error=str(exc),
                )

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    @staticmethod
    def _deliver(listener: Listener, event: SessionCompletedEvent) -> None:
        try:
            listener(event)
        except Exception:
            logger.error(
                "notification_listener_failed",
                event_name=event.name,
                session_id=event.session_id,
                listener=getattr(listener, "__name__", repr(listener)),
                exc_info=True,
            )
