"""Heartbeat Monitor: timeout policy over the ledger."""

from __future__ import annotations

import pytest

from studio.core.errors import InvalidRequestError
from studio.services.heartbeat_monitor import HeartbeatMonitor


class TestResolveTimeout:
    @pytest.mark.parametrize("value", [1_000, 30_000, 300_000])
    def test_accepts_bounds(self, value: int) -> None:
        assert HeartbeatMonitor.resolve_timeout(value) == value

    @pytest.mark.parametrize("value", [999, 300_001, -5, 0])
    def test_rejects_out_of_range(self, value: int) -> None:
        with pytest.raises(InvalidRequestError, match="timeoutMs"):
            HeartbeatMonitor.resolve_timeout(value)

    @pytest.mark.parametrize("value", ["1000", 1000.0, True, None])
    def test_rejects_non_integers(self, value) -> None:
        with pytest.raises(InvalidRequestError):
            HeartbeatMonitor.resolve_timeout(value)


class TestSweep:
    def test_default_timeout_used(self, services, session_id, clock) -> None:
        monitor = services.monitor
        assert monitor.default_timeout_ms == 30_000

        clock.advance(29_000)
        assert monitor.sweep() == []
        clock.advance(2_000)
        assert monitor.sweep() == [session_id]

    def test_explicit_timeout(self, services, session_id, clock) -> None:
        clock.advance(1_100)
        assert services.monitor.sweep(1_000) == [session_id]

    def test_heartbeat_delegates_to_ledger(self, services, session_id) -> None:
        record = services.monitor.heartbeat(session_id, ts=42)
        assert record.id == session_id
        assert record.status == "active"

    def test_invalid_default_rejected_at_construction(self, ledger) -> None:
        with pytest.raises(InvalidRequestError):
            HeartbeatMonitor(ledger, 10)
