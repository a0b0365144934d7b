"""Session repository: row lookups and compare-and-set status transitions."""
from __future__ import annotations

from typing import Iterable

from sqlalchemy import ColumnElement, and_, func, or_, select, update
from sqlalchemy.orm import Session

from studio.models import STATUS_ACTIVE, STATUS_COMPLETED, STATUS_INCOMPLETE
from studio.models import Session as SessionRow


def get_session_row(db: Session, session_id: str) -> SessionRow | None:
    return db.get(SessionRow, session_id)


def list_session_rows(db: Session, limit: int | None = None, offset: int = 0) -> list[SessionRow]:
    """Newest first. ``limit=None`` returns every row (full-table scan)."""
    stmt = select(SessionRow).order_by(SessionRow.created_at.desc(), SessionRow.id).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars())


def count_sessions(db: Session) -> int:
    return db.execute(select(func.count()).select_from(SessionRow)).scalar_one()


def touch_heartbeat(db: Session, session_id: str, heartbeat_at: int, updated_at: int) -> bool:
    """Set liveness only while the row is still active. Returns False if it was not."""
    result = db.execute(
        update(SessionRow)
        .where(SessionRow.id == session_id, SessionRow.status == STATUS_ACTIVE)
        .values(last_heartbeat=heartbeat_at, updated_at=updated_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def mark_completed(db: Session, session_id: str, completed_at: int) -> bool:
    """active|incomplete -> completed. Returns False if the row was in neither state."""
    result = db.execute(
        update(SessionRow)
        .where(
            SessionRow.id == session_id,
            SessionRow.status.in_((STATUS_ACTIVE, STATUS_INCOMPLETE)),
        )
        .values(status=STATUS_COMPLETED, completed_at=completed_at, updated_at=completed_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _stale_before(cutoff: int) -> ColumnElement[bool]:
    return or_(
        and_(SessionRow.last_heartbeat.is_not(None), SessionRow.last_heartbeat < cutoff),
        and_(SessionRow.last_heartbeat.is_(None), SessionRow.created_at < cutoff),
    )


def find_stale_session_ids(db: Session, cutoff: int) -> list[str]:
    """Active sessions whose last heartbeat (or creation, if none) is older than ``cutoff``."""
    stmt = select(SessionRow.id).where(SessionRow.status == STATUS_ACTIVE, _stale_before(cutoff))
    return list(db.execute(stmt).scalars())


def mark_incomplete(
    db: Session, session_ids: Iterable[str], updated_at: int, cutoff: int
) -> list[str]:
    """active -> incomplete for each id still active and still stale; returns the ids demoted.

    Staleness is re-checked in the UPDATE so a heartbeat committed after the scan keeps
    its session active.
    """
    demoted: list[str] = []
    for session_id in session_ids:
        result = db.execute(
            update(SessionRow)
            .where(
                SessionRow.id == session_id,
                SessionRow.status == STATUS_ACTIVE,
                _stale_before(cutoff),
            )
            .values(status=STATUS_INCOMPLETE, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            demoted.append(session_id)
    return demoted
