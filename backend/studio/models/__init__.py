"""SQLAlchemy models only; no business logic."""
from studio.models.audio_file import AudioFile
from studio.models.base import TimestampMixin, UUIDPrimaryKeyMixin, gen_uuid, now_ms
from studio.models.message import Message
from studio.models.session import (
    SESSION_STATUSES,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_INCOMPLETE,
    Session,
)

__all__ = [
    "AudioFile",
    "Message",
    "SESSION_STATUSES",
    "STATUS_ACTIVE",
    "STATUS_COMPLETED",
    "STATUS_INCOMPLETE",
    "Session",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "gen_uuid",
    "now_ms",
]
