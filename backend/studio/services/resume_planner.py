"""
Resume Planner: continue an ``incomplete`` session on a fresh segment.

A resume never reopens an earlier segment's file; it allocates
(session, speaker, max + 1) for both speakers so every recording attempt
stays byte-for-byte intact.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from sqlalchemy.orm import Session

from studio.core.locks import KeyedLock
from studio.core.logging import get_logger
from studio.db.session import SessionFactory, session_scope
from studio.models import STATUS_INCOMPLETE
from studio.repositories import audio_repo, message_repo
from studio.repositories.session_repo import get_session_row
from studio.schemas.speaker import Speaker
from studio.services.audio_store import AudioChunkStore, segment_from_path

logger = get_logger("resume_planner")

NOT_RESUMABLE = "Session not found or not resumable"
SUMMARY_SNIPPET_LENGTH = 200


@dataclass(frozen=True)
class ResumePlan:
    can_resume: bool
    next_segment_number: int
    reason: Optional[str] = None
    track_paths: dict[Speaker, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResumeContext:
    conversation_history: list[dict[str, Any]]
    context_summary: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"conversationHistory": self.conversation_history}
        if self.context_summary is not None:
            payload["contextSummary"] = self.context_summary
        return payload


def next_segment_for(db: Session, session_id: str) -> int:
    highest = 0
    for file_path, segment_number in audio_repo.list_track_paths(db, session_id):
        highest = max(highest, segment_number or 0, segment_from_path(file_path))
    return max(highest + 1, 1)


def _snippet(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= SUMMARY_SNIPPET_LENGTH:
        return text
    return text[: SUMMARY_SNIPPET_LENGTH - 3] + "..."


class ResumePlanner:
    def __init__(self, session_factory: SessionFactory, audio_store: AudioChunkStore) -> None:
        self._factory = session_factory
        self._audio = audio_store
        self._locks = KeyedLock()

    def compute_next_segment(self, session_id: str) -> int:
        with session_scope(self._factory) as db:
            return next_segment_for(db, session_id)

    def can_resume(self, session_id: str) -> tuple[bool, Optional[str]]:
        with session_scope(self._factory) as db:
            row = get_session_row(db, session_id)
            if row is None or row.status != STATUS_INCOMPLETE:
                return False, NOT_RESUMABLE
            return True, None

    def get_resume_context(self, session_id: str) -> ResumeContext:
        with session_scope(self._factory) as db:
            rows = message_repo.list_messages(db, session_id)
            history = [
                {"speaker": row.speaker, "text": row.text, "timestamp": row.ts_ms}
                for row in rows
            ]

        if not history:
            return ResumeContext(conversation_history=[])

        last_by_speaker: dict[str, str] = {}
        for item in history:
            last_by_speaker[item["speaker"]] = item["text"]
        lines = [f"Earlier conversation: {len(history)} messages."]
        for speaker in Speaker:
            text = last_by_speaker.get(speaker.value)
            if text:
                lines.append(f"Last {speaker.value} message: {_snippet(text)}")
        return ResumeContext(conversation_history=history, context_summary=" ".join(lines))

    def open_segment(self, session_id: str) -> ResumePlan:
        """Allocate the next segment's tracks if the session is resumable.

        The session stays ``incomplete``; recording continues on the new
        tracks until ``finish``.
        """
        with self._locks.hold(session_id):
            with session_scope(self._factory) as db:
                next_segment = next_segment_for(db, session_id)
                row = get_session_row(db, session_id)
                if row is None or row.status != STATUS_INCOMPLETE:
                    return ResumePlan(
                        can_resume=False,
                        next_segment_number=next_segment,
                        reason=NOT_RESUMABLE,
                    )
                paths: dict[Speaker, str] = {}
                try:
                    for speaker in Speaker:
                        track = self._audio.allocate_track(db, session_id, speaker, next_segment)
                        paths[speaker] = track.file_path
                except Exception:
                    # Rows roll back with the transaction; files created here must go too
                    for created in paths.values():
                        Path(created).unlink(missing_ok=True)
                    raise

        logger.info("session_resumed", session_id=session_id, segment_number=next_segment)
        return ResumePlan(can_resume=True, next_segment_number=next_segment, track_paths=paths)


__all__ = ["NOT_RESUMABLE", "ResumeContext", "ResumePlan", "ResumePlanner", "next_segment_for"]
