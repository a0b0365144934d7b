"""Base mixins and common columns for models."""
from __future__ import annotations

import time
from uuid import uuid4

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column


def gen_uuid():
    return str(uuid4())


def now_ms() -> int:
    """Wall-clock time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


class TimestampMixin:
    # Epoch milliseconds; services bump updated_at explicitly where strict ordering matters
    created_at: Mapped[int] = mapped_column(
        BigInteger,
        default=now_ms,
        nullable=False,
    )
    updated_at: Mapped[int] = mapped_column(
        BigInteger,
        default=now_ms,
        onupdate=now_ms,
        nullable=False,
    )


class UUIDPrimaryKeyMixin:
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=gen_uuid,
    )
