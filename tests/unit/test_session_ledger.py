"""Session Ledger: creation, state machine, notifications, listing."""

from __future__ import annotations

import pytest

from studio.core.errors import InvalidRequestError, InvalidStateError, SessionNotFoundError
from studio.db.session import build_session_factory, session_scope
from studio.repositories import session_repo
from studio.schemas.settings import SessionSettings
from studio.schemas.speaker import Speaker


class TestCreate:
    def test_new_session_is_active_with_heartbeat_at_creation(self, ledger, clock) -> None:
        created = ledger.create(title="Episode 1")
        session = created.session

        assert session.status == "active"
        assert session.title == "Episode 1"
        assert session.created_at == clock.now
        assert session.last_heartbeat == session.created_at
        assert session.completed_at is None
        assert session.duration is None
        assert set(created.tracks) == {Speaker.HUMAN, Speaker.AI}

    def test_partial_settings_merged_over_defaults(self, ledger) -> None:
        session = ledger.create(settings={"voice": "marin", "temperature": 0.5}).session
        assert session.settings.voice == "marin"
        assert session.settings.temperature == 0.5
        assert session.settings.model == "gpt-realtime"
        assert session.settings.silence_ms == 900

    def test_invalid_settings_rejected_without_side_effects(self, ledger, audio_store) -> None:
        with pytest.raises(InvalidRequestError, match="temperature"):
            ledger.create(settings={"temperature": 1.5})
        assert ledger.list_all() == []
        assert not any(audio_store.sessions_dir.iterdir())

    def test_settings_round_trip_unchanged(self, ledger) -> None:
        settings = SessionSettings(persona_prompt="p" * 5000, context_prompt="ctx")
        session = ledger.create(settings=settings).session
        assert ledger.get(session.id).settings == settings


class TestHeartbeat:
    def test_strictly_increases_updated_at(self, ledger, session_id) -> None:
        before = ledger.get(session_id)
        # Clock has not moved; updated_at must still advance
        after = ledger.heartbeat(session_id, ts=123)
        assert after.updated_at > before.updated_at
        assert after.last_heartbeat is not None

    def test_records_server_time_not_client_ts(self, ledger, session_id, clock) -> None:
        clock.advance(500)
        after = ledger.heartbeat(session_id, ts=1)
        assert after.last_heartbeat == clock.now

    def test_unknown_session(self, ledger) -> None:
        with pytest.raises(SessionNotFoundError, match="Session not found"):
            ledger.heartbeat("missing")

    def test_completed_session_rejected(self, ledger, session_id) -> None:
        ledger.finish(session_id)
        with pytest.raises(InvalidStateError) as exc_info:
            ledger.heartbeat(session_id)
        assert "completed" in str(exc_info.value)
        assert "not active" in str(exc_info.value)

    def test_incomplete_session_rejected(self, ledger, session_id, clock) -> None:
        clock.advance(2_000)
        ledger.sweep_timeouts(1_000)
        with pytest.raises(InvalidStateError, match="incomplete"):
            ledger.heartbeat(session_id)


class TestSweep:
    def test_idle_session_demoted(self, ledger, session_id, clock) -> None:
        clock.advance(1_100)
        assert ledger.sweep_timeouts(1_000) == [session_id]
        assert ledger.get(session_id).status == "incomplete"

    def test_fresh_session_untouched(self, ledger, session_id, clock) -> None:
        clock.advance(900)
        assert ledger.sweep_timeouts(1_000) == []
        assert ledger.get(session_id).status == "active"

    def test_boundary_is_strict(self, ledger, session_id, clock) -> None:
        clock.advance(1_000)
        assert ledger.sweep_timeouts(1_000) == []

    def test_heartbeat_keeps_session_alive(self, ledger, session_id, clock) -> None:
        clock.advance(800)
        ledger.heartbeat(session_id)
        clock.advance(800)
        assert ledger.sweep_timeouts(1_000) == []

    def test_only_stale_sessions_demoted(self, ledger, clock) -> None:
        stale = ledger.create(title="stale").session.id
        clock.advance(5_000)
        fresh = ledger.create(title="fresh").session.id
        done = ledger.create(title="done").session.id
        ledger.finish(done)
        clock.advance(500)

        assert ledger.sweep_timeouts(1_000) == [stale]
        assert ledger.get(fresh).status == "active"
        assert ledger.get(done).status == "completed"

    def test_idempotent(self, ledger, session_id, clock) -> None:
        clock.advance(2_000)
        assert ledger.sweep_timeouts(1_000) == [session_id]
        assert ledger.sweep_timeouts(1_000) == []

    def test_non_positive_timeout_rejected(self, ledger) -> None:
        with pytest.raises(InvalidRequestError):
            ledger.sweep_timeouts(0)


class TestFinish:
    def test_finish_immediately(self, ledger, session_id) -> None:
        session = ledger.finish(session_id)
        assert session.status == "completed"
        assert session.completed_at > session.created_at
        assert session.duration == session.completed_at - session.created_at

        with pytest.raises(InvalidStateError, match="completed"):
            ledger.finish(session_id)

    def test_finish_from_incomplete(self, ledger, session_id, clock) -> None:
        clock.advance(2_000)
        ledger.sweep_timeouts(1_000)
        assert ledger.finish(session_id).status == "completed"

    def test_completed_is_never_demoted(self, ledger, session_id, clock) -> None:
        ledger.finish(session_id)
        clock.advance(60_000)
        assert ledger.sweep_timeouts(1_000) == []
        assert ledger.get(session_id).status == "completed"

    def test_unknown_session(self, ledger) -> None:
        with pytest.raises(SessionNotFoundError):
            ledger.finish("missing")

    def test_publishes_completion_event(self, ledger, notifier, transcripts, session_id, clock) -> None:
        received = []
        notifier.subscribe(received.append)
        transcripts.append(session_id, "human", "hello", 10)
        clock.advance(4_000)

        ledger.finish(session_id)

        assert len(received) == 1
        payload = received[0].to_payload()
        assert payload == {
            "sessionId": session_id,
            "status": "completed",
            "duration": 4_000,
            "completedAt": clock.now,
            "messageCount": 1,
        }

    def test_failing_listener_does_not_break_finish(self, ledger, notifier, session_id) -> None:
        def broken(event) -> None:
            raise RuntimeError("listener down")

        received = []
        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        assert ledger.finish(session_id).status == "completed"
        assert len(received) == 1


class TestListing:
    def test_newest_first_with_total(self, ledger, clock) -> None:
        ids = []
        for i in range(5):
            ids.append(ledger.create(title=f"s{i}").session.id)
            clock.advance(10)

        page = ledger.list_page(limit=2, offset=0)
        assert [s.id for s in page.sessions] == [ids[4], ids[3]]
        assert page.total == 5

        last = ledger.list_page(limit=2, offset=4)
        assert [s.id for s in last.sessions] == [ids[0]]

    @pytest.mark.parametrize(
        ("limit", "offset", "field"),
        [(0, 0, "limit"), (101, 0, "limit"), (10, -1, "offset")],
    )
    def test_invalid_page(self, ledger, limit, offset, field) -> None:
        with pytest.raises(InvalidRequestError, match=field):
            ledger.list_page(limit=limit, offset=offset)

    def test_get_unknown(self, ledger) -> None:
        with pytest.raises(SessionNotFoundError):
            ledger.get("missing")


class TestRaces:
    """Interleavings forced by running a competing write between a read and its update."""

    def test_heartbeat_after_scan_keeps_session_active(
        self, ledger, session_id, clock, monkeypatch
    ) -> None:
        clock.advance(1_100)
        scan = session_repo.find_stale_session_ids

        def scan_then_heartbeat(db, cutoff):
            ids = scan(db, cutoff)
            ledger.heartbeat(session_id)
            return ids

        monkeypatch.setattr(session_repo, "find_stale_session_ids", scan_then_heartbeat)

        assert ledger.sweep_timeouts(1_000) == []
        record = ledger.get(session_id)
        assert record.status == "active"
        assert record.last_heartbeat == clock.now

    def test_stale_sessions_still_demoted_alongside_a_late_heartbeat(
        self, ledger, clock, monkeypatch
    ) -> None:
        idle = ledger.create(title="idle").session.id
        live = ledger.create(title="live").session.id
        clock.advance(1_100)
        scan = session_repo.find_stale_session_ids

        def scan_then_heartbeat(db, cutoff):
            ids = scan(db, cutoff)
            ledger.heartbeat(live)
            return ids

        monkeypatch.setattr(session_repo, "find_stale_session_ids", scan_then_heartbeat)

        assert ledger.sweep_timeouts(1_000) == [idle]
        assert ledger.get(live).status == "active"

    def test_finish_between_read_and_heartbeat_update(
        self, services, ledger, session_id, clock, monkeypatch
    ) -> None:
        factory = build_session_factory(services.engine)
        touch = session_repo.touch_heartbeat

        def finish_first(db, sid, heartbeat_at, updated_at):
            with session_scope(factory) as other:
                assert session_repo.mark_completed(other, sid, clock.now + 1)
            return touch(db, sid, heartbeat_at, updated_at)

        monkeypatch.setattr(session_repo, "touch_heartbeat", finish_first)

        with pytest.raises(InvalidStateError) as exc_info:
            ledger.heartbeat(session_id)
        assert "completed" in str(exc_info.value)
        assert ledger.get(session_id).status == "completed"

    def test_concurrent_finish_loses(
        self, services, ledger, notifier, session_id, monkeypatch
    ) -> None:
        events = []
        notifier.subscribe(events.append)
        factory = build_session_factory(services.engine)
        complete = session_repo.mark_completed

        def completed_elsewhere(db, sid, completed_at):
            with session_scope(factory) as other:
                assert complete(other, sid, completed_at)
            return complete(db, sid, completed_at)

        monkeypatch.setattr(session_repo, "mark_completed", completed_elsewhere)

        with pytest.raises(InvalidStateError, match="completed"):
            ledger.finish(session_id)
        assert events == []
