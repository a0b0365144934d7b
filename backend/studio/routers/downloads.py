"""Downloads: finalized audio tracks and transcript exports."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse

from studio.routers.dependencies import get_audio_store, get_exporter
from studio.schemas.speaker import normalize_speaker
from studio.services.audio_store import AudioChunkStore  # noqa: TC001
from studio.services.exports import MARKDOWN_CONTENT_TYPE, TranscriptExporter  # noqa: TC001

router = APIRouter(prefix="/api/session", tags=["downloads"])


@router.get("/{session_id}/file/{speaker}")
def download_track(
    session_id: str,
    speaker: str,
    segment: Optional[int] = None,
    audio: AudioChunkStore = Depends(get_audio_store),  # noqa: B008
) -> StreamingResponse:
    canonical = normalize_speaker(speaker)
    stream = audio.stream(session_id, canonical, segment)
    filename = f"{canonical.value}-{session_id}.wav"
    return StreamingResponse(
        stream.iter_bytes(),
        media_type=stream.content_type,
        headers={
            "Content-Length": str(stream.size),
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )


@router.get("/{session_id}/transcript.json")
def transcript_json(
    session_id: str,
    exporter: TranscriptExporter = Depends(get_exporter),  # noqa: B008
) -> dict[str, Any]:
    return exporter.to_json(session_id)


@router.get("/{session_id}/transcript.md", response_class=PlainTextResponse)
def transcript_markdown(
    session_id: str,
    exporter: TranscriptExporter = Depends(get_exporter),  # noqa: B008
) -> PlainTextResponse:
    return PlainTextResponse(
        exporter.to_markdown(session_id),
        media_type=MARKDOWN_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="transcript-{session_id}.md"'},
    )
