"""Transcript messages: one utterance per row, ordered by client timestamp."""
from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.session import Base
from studio.models.base import now_ms


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_session_ts", "session_id", "ts_ms", "id"),)

    # Store-assigned sequence; doubles as the insertion-order tie-breaker
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    speaker: Mapped[str] = mapped_column(String(16), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    ts_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    raw_json: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, default=now_ms, nullable=False)

    session: Mapped["Session"] = relationship("Session", back_populates="messages")
