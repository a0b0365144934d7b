"""
Transcript Store: append-only utterances per session.

Messages may arrive network-reordered or duplicated. Nothing is reordered or
deduplicated on write; every read sorts by the client-supplied ``ts_ms``, ties
broken by the store-assigned id.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from studio.core.errors import InvalidRequestError, SessionNotFoundError
from studio.core.logging import get_logger
from studio.db.session import SessionFactory, session_scope
from studio.models import Message as MessageRow
from studio.models import now_ms
from studio.repositories import message_repo
from studio.repositories.session_repo import get_session_row
from studio.schemas.speaker import Speaker
from studio.services.session_ledger import DEFAULT_PAGE_SIZE, validate_page

logger = get_logger("transcript_store")


@dataclass(frozen=True)
class Message:
    id: int
    session_id: str
    speaker: Speaker
    text: str
    ts_ms: int
    raw_json: Any
    created_at: int

    @classmethod
    def from_row(cls, row: MessageRow) -> "Message":
        return cls(
            id=row.id,
            session_id=row.session_id,
            speaker=Speaker(row.speaker),
            text=row.text,
            ts_ms=row.ts_ms,
            raw_json=row.raw_json,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class MessagePage:
    messages: list[Message]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.messages) < self.total


class TranscriptStore:
    def __init__(self, session_factory: SessionFactory, clock: Callable[[], int] = now_ms) -> None:
        self._factory = session_factory
        self._clock = clock

    def append(
        self,
        session_id: str,
        speaker: Speaker | str,
        text: str,
        ts_ms: int,
        raw_json: Any = None,
    ) -> Message:
        speaker = Speaker.coerce(speaker)
        if not isinstance(text, str) or not text.strip():
            raise InvalidRequestError("text", "must be a non-empty string")
        if isinstance(ts_ms, bool) or not isinstance(ts_ms, int) or ts_ms < 0:
            raise InvalidRequestError("tsMs", "must be an integer >= 0")

        with session_scope(self._factory) as db:
            if get_session_row(db, session_id) is None:
                raise SessionNotFoundError(session_id)
            row = message_repo.insert_message(
                db,
                session_id=session_id,
                speaker=speaker.value,
                text=text,
                ts_ms=ts_ms,
                raw_json=raw_json,
                created_at=self._clock(),
            )
            message = Message.from_row(row)

        logger.debug(
            "message_appended",
            session_id=session_id,
            message_id=message.id,
            speaker=speaker.value,
            ts_ms=ts_ms,
        )
        return message

    def list(self, session_id: str) -> list[Message]:
        with session_scope(self._factory) as db:
            if get_session_row(db, session_id) is None:
                raise SessionNotFoundError(session_id)
            return [Message.from_row(r) for r in message_repo.list_messages(db, session_id)]

    def list_page(
        self, session_id: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> MessagePage:
        limit, offset = validate_page(limit, offset)
        with session_scope(self._factory) as db:
            if get_session_row(db, session_id) is None:
                raise SessionNotFoundError(session_id)
            rows = message_repo.list_messages(db, session_id, limit=limit, offset=offset)
            total = message_repo.count_messages(db, session_id)
            return MessagePage(
                messages=[Message.from_row(r) for r in rows],
                total=total,
                limit=limit,
                offset=offset,
            )

    def count(self, session_id: str) -> int:
        with session_scope(self._factory) as db:
            return message_repo.count_messages(db, session_id)
