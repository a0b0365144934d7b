"""One physical audio track: (session, speaker, segment) -> file on disk."""
from __future__ import annotations

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio.db.session import Base
from studio.models.base import TimestampMixin, UUIDPrimaryKeyMixin


class AudioFile(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "audio_files"
    __table_args__ = (
        UniqueConstraint("session_id", "speaker", "segment_number", name="uq_audio_track_segment"),
    )

    session_id: Mapped[str] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    speaker: Mapped[str] = mapped_column(String(16), nullable=False)  # 'human' | 'ai'
    file_path: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    segment_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)  # seconds, set on finalize
    format: Mapped[str] = mapped_column(String(16), nullable=False, default="wav")
    finalized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    session: Mapped["Session"] = relationship("Session", back_populates="audio_files")
