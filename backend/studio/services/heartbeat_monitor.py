"""Liveness tracking: heartbeats in, stale sessions demoted to ``incomplete``."""
from __future__ import annotations

from typing import Any

from studio.core.config import MAX_HEARTBEAT_TIMEOUT_MS, MIN_HEARTBEAT_TIMEOUT_MS
from studio.core.errors import InvalidRequestError
from studio.core.logging import get_logger
from studio.services.session_ledger import SessionLedger, SessionRecord

logger = get_logger("heartbeat_monitor")


class HeartbeatMonitor:
    def __init__(self, ledger: SessionLedger, default_timeout_ms: int) -> None:
        self._ledger = ledger
        self._default_timeout_ms = self.resolve_timeout(default_timeout_ms)

    @property
    def default_timeout_ms(self) -> int:
        return self._default_timeout_ms

    @staticmethod
    def resolve_timeout(timeout_ms: Any) -> int:
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
            raise InvalidRequestError("timeoutMs", "must be an integer number of milliseconds")
        if not MIN_HEARTBEAT_TIMEOUT_MS <= timeout_ms <= MAX_HEARTBEAT_TIMEOUT_MS:
            raise InvalidRequestError(
                "timeoutMs",
                f"must be between {MIN_HEARTBEAT_TIMEOUT_MS} and {MAX_HEARTBEAT_TIMEOUT_MS}",
            )
        return timeout_ms

    def heartbeat(self, session_id: str, ts: int | None = None) -> SessionRecord:
        return self._ledger.heartbeat(session_id, ts)

    def sweep(self, timeout_ms: int | None = None) -> list[str]:
        """Run one timeout sweep; ``None`` uses the configured default."""
        timeout = self._default_timeout_ms if timeout_ms is None else self.resolve_timeout(timeout_ms)
        demoted = self._ledger.sweep_timeouts(timeout)
        logger.debug("sweep_complete", timeout_ms=timeout, demoted=len(demoted))
        return demoted
