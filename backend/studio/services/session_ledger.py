"""
Session Ledger: persistent session records and the status state machine.

    active -> incomplete -> completed
    active -----------------> completed

``completed`` is terminal. Every transition is a conditional UPDATE on the
expected source status, so a heartbeat racing a finish can never resurrect a
completed session: whichever commits second sees zero affected rows and fails
with InvalidStateError.
"""
from __future__ import annotations

import shutil
from dataclasses import dataclass
from typing import Any, Callable, Optional

from studio.core.errors import InvalidRequestError, InvalidStateError, SessionNotFoundError
from studio.core.locks import KeyedLock
from studio.core.logging import get_logger
from studio.db.session import SessionFactory, session_scope
from studio.models import STATUS_ACTIVE, STATUS_INCOMPLETE, gen_uuid, now_ms
from studio.models import Session as SessionRow
from studio.repositories import message_repo, session_repo
from studio.schemas.settings import SessionSettings
from studio.schemas.speaker import Speaker
from studio.services.audio_store import AudioChunkStore, TrackInfo
from studio.services.notifications import NotificationPort, NullNotifier, SessionCompletedEvent

logger = get_logger("session_ledger")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50

# Legal source states per transition target
_TRANSITIONS: dict[str, frozenset[str]] = {
    "heartbeat": frozenset({STATUS_ACTIVE}),
    "timeout": frozenset({STATUS_ACTIVE}),
    "finish": frozenset({STATUS_ACTIVE, STATUS_INCOMPLETE}),
}


@dataclass(frozen=True)
class SessionRecord:
    id: str
    title: str
    status: str
    settings: SessionSettings
    last_heartbeat: Optional[int]
    completed_at: Optional[int]
    created_at: int
    updated_at: int

    @property
    def duration(self) -> Optional[int]:
        if self.completed_at is None:
            return None
        return self.completed_at - self.created_at

    @classmethod
    def from_row(cls, row: SessionRow) -> "SessionRecord":
        return cls(
            id=row.id,
            title=row.title or "",
            status=row.status,
            settings=SessionSettings.parse(row.settings),
            last_heartbeat=row.last_heartbeat,
            completed_at=row.completed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dataclass(frozen=True)
class CreatedSession:
    session: SessionRecord
    tracks: dict[Speaker, TrackInfo]


@dataclass(frozen=True)
class SessionPage:
    sessions: list[SessionRecord]
    total: int
    limit: int
    offset: int


def validate_page(limit: Any, offset: Any, max_limit: int = MAX_PAGE_SIZE) -> tuple[int, int]:
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
        raise InvalidRequestError("limit", f"must be an integer between 1 and {max_limit}")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidRequestError("offset", "must be a non-negative integer")
    return limit, offset


class SessionLedger:
    def __init__(
        self,
        session_factory: SessionFactory,
        audio_store: AudioChunkStore,
        notifier: NotificationPort | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._factory = session_factory
        self._audio = audio_store
        self._notifier = notifier or NullNotifier()
        self._clock = clock
        self._locks = KeyedLock()

    # --- create ---

    def create(
        self,
        title: str | None = None,
        settings: SessionSettings | dict[str, Any] | None = None,
    ) -> CreatedSession:
        """New session in ``active`` with segment-1 tracks for both speakers."""
        if not isinstance(settings, SessionSettings):
            settings = SessionSettings.parse(settings)

        session_id = gen_uuid()
        try:
            with session_scope(self._factory) as db:
                now = self._clock()
                row = SessionRow(
                    id=session_id,
                    title=title or "",
                    status=STATUS_ACTIVE,
                    settings=settings.model_dump(),
                    last_heartbeat=now,
                    created_at=now,
                    updated_at=now,
                )
                db.add(row)
                db.flush()
                tracks = {
                    speaker: TrackInfo.from_row(
                        self._audio.allocate_track(db, session_id, speaker, 1)
                    )
                    for speaker in Speaker
                }
                record = SessionRecord.from_row(row)
        except Exception:
            # Row insert rolled back; drop any track files created before the failure
            shutil.rmtree(self._audio.sessions_dir / session_id, ignore_errors=True)
            raise

        logger.info("session_created", session_id=session_id, title=record.title)
        return CreatedSession(session=record, tracks=tracks)

    # --- reads ---

    def get(self, session_id: str) -> SessionRecord:
        with session_scope(self._factory) as db:
            row = session_repo.get_session_row(db, session_id)
            if row is None:
                raise SessionNotFoundError(session_id)
            return SessionRecord.from_row(row)

    def exists(self, session_id: str) -> bool:
        with session_scope(self._factory) as db:
            return session_repo.get_session_row(db, session_id) is not None

    def list_all(self) -> list[SessionRecord]:
        """Every session, newest first. Unpaginated; prefer ``list_page``."""
        with session_scope(self._factory) as db:
            return [SessionRecord.from_row(r) for r in session_repo.list_session_rows(db)]

    def list_page(self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> SessionPage:
        limit, offset = validate_page(limit, offset)
        with session_scope(self._factory) as db:
            rows = session_repo.list_session_rows(db, limit=limit, offset=offset)
            total = session_repo.count_sessions(db)
            return SessionPage(
                sessions=[SessionRecord.from_row(r) for r in rows],
                total=total,
                limit=limit,
                offset=offset,
            )

    # --- transitions ---

    def heartbeat(self, session_id: str, ts: int | None = None) -> SessionRecord:
        """Record liveness. Only legal while ``active``.

        ``ts`` is the client's clock and is only logged; staleness is always
        judged against server time.
        """
        with self._locks.hold(session_id):
            with session_scope(self._factory) as db:
                row = session_repo.get_session_row(db, session_id)
                if row is None:
                    raise SessionNotFoundError(session_id)
                self._require(row, "heartbeat", "send heartbeat")

                now = self._clock()
                updated_at = max(now, row.updated_at + 1)
                if not session_repo.touch_heartbeat(db, session_id, now, updated_at):
                    db.refresh(row)
                    self._require(row, "heartbeat", "send heartbeat")
                db.refresh(row)
                record = SessionRecord.from_row(row)

        logger.debug("heartbeat", session_id=session_id, client_ts=ts, server_ts=record.last_heartbeat)
        return record

    def sweep_timeouts(self, timeout_ms: int) -> list[str]:
        """Demote every active session idle for longer than ``timeout_ms``.

        Idle means ``last_heartbeat`` (or ``created_at`` when no heartbeat was
        ever recorded) is strictly older than ``now - timeout_ms``. Safe to run
        repeatedly; returns only the ids demoted by this call.
        """
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            raise InvalidRequestError("timeoutMs", "must be a positive integer")

        now = self._clock()
        cutoff = now - timeout_ms
        with session_scope(self._factory) as db:
            stale = session_repo.find_stale_session_ids(db, cutoff)
            demoted = session_repo.mark_incomplete(db, stale, now, cutoff)

        if demoted:
            logger.info("sessions_timed_out", count=len(demoted), timeout_ms=timeout_ms, session_ids=demoted)
        return demoted

    def finish(self, session_id: str) -> SessionRecord:
        """active|incomplete -> completed, then publish ``session:completed``."""
        with self._locks.hold(session_id):
            with session_scope(self._factory) as db:
                row = session_repo.get_session_row(db, session_id)
                if row is None:
                    raise SessionNotFoundError(session_id)
                self._require(row, "finish", "finish session")

                # completedAt must land strictly after createdAt even within one clock tick
                completed_at = max(self._clock(), row.created_at + 1)
                if not session_repo.mark_completed(db, session_id, completed_at):
                    db.refresh(row)
                    self._require(row, "finish", "finish session")
                db.refresh(row)
                record = SessionRecord.from_row(row)
                message_count = message_repo.count_messages(db, session_id)

        logger.info(
            "session_finished",
            session_id=session_id,
            duration_ms=record.duration,
            message_count=message_count,
        )
        self._notifier.publish(
            SessionCompletedEvent(
                session_id=record.id,
                status=record.status,
                duration=record.duration or 0,
                completed_at=record.completed_at or completed_at,
                message_count=message_count,
            )
        )
        return record

    @staticmethod
    def _require(row: SessionRow, transition: str, operation: str) -> None:
        if row.status not in _TRANSITIONS[transition]:
            detail = "session not active" if transition == "heartbeat" else None
            raise InvalidStateError(operation, row.status, detail)


__all__ = [
    "CreatedSession",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "SessionLedger",
    "SessionPage",
    "SessionRecord",
    "validate_page",
]
