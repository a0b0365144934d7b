"""Transcript repository: append-only rows read back in (ts_ms, id) order."""
from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from studio.models import Message


def insert_message(
    db: Session,
    session_id: str,
    speaker: str,
    text: str,
    ts_ms: int,
    raw_json,
    created_at: int,
) -> Message:
    message = Message(
        session_id=session_id,
        speaker=speaker,
        text=text,
        ts_ms=ts_ms,
        raw_json=raw_json,
        created_at=created_at,
    )
    db.add(message)
    db.flush()
    return message


def list_messages(
    db: Session,
    session_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> list[Message]:
    """Ascending by ts_ms; ties broken by store-assigned id (insertion order)."""
    stmt = (
        select(Message)
        .where(Message.session_id == session_id)
        .order_by(Message.ts_ms.asc(), Message.id.asc())
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars())


def count_messages(db: Session, session_id: str) -> int:
    return db.execute(
        select(func.count()).select_from(Message).where(Message.session_id == session_id)
    ).scalar_one()


def rename_speaker(db: Session, old: str, new: str) -> int:
    result = db.execute(
        update(Message)
        .where(Message.speaker == old)
        .values(speaker=new)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
