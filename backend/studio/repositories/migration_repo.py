"""Legacy speaker migration: rewrite pre-rename speaker names in place."""
from __future__ import annotations

from sqlalchemy.orm import Session

from studio.repositories import audio_repo, message_repo
from studio.schemas.speaker import LEGACY_SPEAKER_ALIASES


def migrate_legacy_speakers(db: Session) -> dict[str, dict[str, int]]:
    """
    Convert historical 'mikkel' / 'freja' rows to 'human' / 'ai'.
    Idempotent; returns per-table counts keyed by "<old>-><new>".
    Call within a transaction; caller should commit.
    """
    counts: dict[str, dict[str, int]] = {"messages": {}, "audio_files": {}}
    for legacy, canonical in LEGACY_SPEAKER_ALIASES.items():
        key = f"{legacy}->{canonical.value}"
        counts["messages"][key] = message_repo.rename_speaker(db, legacy, canonical.value)
        counts["audio_files"][key] = audio_repo.rename_speaker(db, legacy, canonical.value)
    return counts
