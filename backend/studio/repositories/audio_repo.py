"""Audio track repository: one row per (session, speaker, segment)."""
from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from studio.models import AudioFile


def get_track(db: Session, session_id: str, speaker: str, segment_number: int) -> AudioFile | None:
    return db.execute(
        select(AudioFile).where(
            AudioFile.session_id == session_id,
            AudioFile.speaker == speaker,
            AudioFile.segment_number == segment_number,
        )
    ).scalar_one_or_none()


def get_current_track(db: Session, session_id: str, speaker: str) -> AudioFile | None:
    """Highest-numbered segment for the speaker, i.e. the one being recorded."""
    return db.execute(
        select(AudioFile)
        .where(AudioFile.session_id == session_id, AudioFile.speaker == speaker)
        .order_by(AudioFile.segment_number.desc())
        .limit(1)
    ).scalar_one_or_none()


def list_tracks(db: Session, session_id: str) -> list[AudioFile]:
    return list(
        db.execute(
            select(AudioFile)
            .where(AudioFile.session_id == session_id)
            .order_by(AudioFile.segment_number, AudioFile.speaker)
        ).scalars()
    )


def list_track_paths(db: Session, session_id: str) -> list[tuple[str, int]]:
    rows = db.execute(
        select(AudioFile.file_path, AudioFile.segment_number).where(
            AudioFile.session_id == session_id
        )
    ).all()
    return [(r[0], r[1]) for r in rows]


def rename_speaker(db: Session, old: str, new: str) -> int:
    result = db.execute(
        update(AudioFile)
        .where(AudioFile.speaker == old)
        .values(speaker=new)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
