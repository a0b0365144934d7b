"""Transcript export as a JSON document or Markdown."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from studio.models import now_ms
from studio.schemas.responses import message_payload
from studio.services.session_ledger import SessionLedger, SessionRecord
from studio.services.transcript_store import Message, TranscriptStore

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
UNTITLED = "Untitled session"


def format_offset(ms: int) -> str:
    """``mm:ss.mmm``; minutes are not wrapped at 60."""
    ms = max(ms, 0)
    minutes, rest = divmod(ms, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


def message_offset(message: Message, session: SessionRecord) -> int:
    # Clients send either wall-clock epoch ms or an offset from recording start
    if message.ts_ms >= session.created_at:
        return message.ts_ms - session.created_at
    return message.ts_ms


def _iso(ms: int | None) -> str | None:
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


class TranscriptExporter:
    def __init__(
        self,
        ledger: SessionLedger,
        transcripts: TranscriptStore,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._ledger = ledger
        self._transcripts = transcripts
        self._clock = clock

    def to_json(self, session_id: str) -> dict[str, Any]:
        session = self._ledger.get(session_id)
        messages = self._transcripts.list(session_id)
        return {
            "sessionId": session.id,
            "title": session.title,
            "status": session.status,
            "createdAt": session.created_at,
            "completedAt": session.completed_at,
            "exportedAt": self._clock(),
            "messages": [message_payload(m) for m in messages],
        }

    def to_markdown(self, session_id: str) -> str:
        session = self._ledger.get(session_id)
        messages = self._transcripts.list(session_id)

        lines = [
            f"# {session.title or UNTITLED}",
            "",
            f"- Session: `{session.id}`",
            f"- Status: {session.status}",
            f"- Created: {_iso(session.created_at)}",
        ]
        if session.completed_at is not None:
            lines.append(f"- Completed: {_iso(session.completed_at)}")
            lines.append(f"- Duration: {format_offset(session.duration or 0)}")
        lines += ["", "## Transcript", ""]

        if not messages:
            lines.append("_No messages recorded._")
        for message in messages:
            stamp = format_offset(message_offset(message, session))
            lines.append(f"**[{stamp}] {message.speaker.value}:** {message.text}")
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"
