"""Audio chunk ingestion: append raw PCM, finalize to WAV, inspect a track.

Speaker path segments accept the legacy ``mikkel``/``freja`` names; they are
normalized here and never reach the store.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from studio.routers.dependencies import get_audio_store
from studio.schemas.responses import track_payload
from studio.schemas.speaker import normalize_speaker
from studio.services.audio_store import AudioChunkStore  # noqa: TC001

router = APIRouter(prefix="/api/audio", tags=["audio"])


@router.post("/{session_id}/{speaker}")
async def append_chunk(
    session_id: str,
    speaker: str,
    request: Request,
    audio: AudioChunkStore = Depends(get_audio_store),  # noqa: B008
) -> dict[str, Any]:
    canonical = normalize_speaker(speaker)
    data = await request.body()
    result = await run_in_threadpool(audio.append_chunk, session_id, canonical, data)
    return {
        "ok": True,
        "speaker": canonical.value,
        "bytesWritten": len(data),
        "totalSize": result.total_size,
    }


@router.post("/{session_id}/{speaker}/finalize")
def finalize_track(
    session_id: str,
    speaker: str,
    audio: AudioChunkStore = Depends(get_audio_store),  # noqa: B008
) -> dict[str, Any]:
    track = audio.finalize(session_id, normalize_speaker(speaker))
    return track_payload(track)


@router.get("/{session_id}/{speaker}/info")
def track_info(
    session_id: str,
    speaker: str,
    segment: Optional[int] = None,
    audio: AudioChunkStore = Depends(get_audio_store),  # noqa: B008
) -> dict[str, Any]:
    track = audio.info(session_id, normalize_speaker(speaker), segment)
    return track_payload(track)
