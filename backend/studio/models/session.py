"""Recording session: status, settings and liveness; owns its tracks and transcript."""
from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.session import Base
from studio.models.base import TimestampMixin, UUIDPrimaryKeyMixin

STATUS_ACTIVE = "active"
STATUS_INCOMPLETE = "incomplete"
STATUS_COMPLETED = "completed"

SESSION_STATUSES = (STATUS_ACTIVE, STATUS_INCOMPLETE, STATUS_COMPLETED)


class Session(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_status_heartbeat", "status", "last_heartbeat"),)

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE)
    # Full SessionSettings document, written once at creation
    settings: Mapped[dict] = mapped_column(JSON, nullable=False)
    last_heartbeat: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    audio_files: Mapped[list] = relationship(
        "AudioFile",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="AudioFile.segment_number",
    )
    messages: Mapped[list] = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Message.ts_ms",
    )

    @property
    def duration_ms(self) -> int | None:
        if self.completed_at is None:
            return None
        return self.completed_at - self.created_at
