"""JSON shapes returned by the HTTP layer (camelCase keys, epoch-ms timestamps)."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from studio.services.audio_store import TrackInfo
    from studio.services.session_ledger import SessionRecord
    from studio.services.transcript_store import Message

TRANSCRIPT_PREVIEW_SIZE = 3


def session_summary(session: SessionRecord) -> dict[str, Any]:
    return {
        "id": session.id,
        "title": session.title,
        "status": session.status,
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
        "lastHeartbeat": session.last_heartbeat,
        "completedAt": session.completed_at,
        "duration": session.duration,
    }


def track_payload(track: TrackInfo) -> dict[str, Any]:
    return {
        "speaker": track.speaker.value,
        "segmentNumber": track.segment_number,
        "filePath": track.file_path,
        "size": track.size,
        "format": track.format,
        "duration": track.duration,
        "finalized": track.finalized,
    }


def message_payload(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "sessionId": message.session_id,
        "speaker": message.speaker.value,
        "text": message.text,
        "ts_ms": message.ts_ms,
        "raw_json": message.raw_json,
        "createdAt": message.created_at,
    }


def download_links(session_id: str) -> dict[str, str]:
    base = f"/api/session/{session_id}"
    return {
        "humanAudio": f"{base}/file/human",
        "aiAudio": f"{base}/file/ai",
        "transcript": f"{base}/transcript.json",
        "transcriptMarkdown": f"{base}/transcript.md",
        "session": base,
    }


def session_detail(
    session: SessionRecord,
    tracks: list[TrackInfo],
    message_count: int,
    preview: list[Message],
) -> dict[str, Any]:
    settings = session.settings.model_dump()
    detail = session_summary(session)
    detail.update(
        {
            "settings": settings,
            "persona_prompt": settings["persona_prompt"],
            "context_prompt": settings["context_prompt"],
            "audioFiles": [track_payload(t) for t in tracks],
            "messageCount": message_count,
            "transcriptPreview": [message_payload(m) for m in preview[:TRANSCRIPT_PREVIEW_SIZE]],
            "downloadLinks": download_links(session.id),
        }
    )
    return detail
