"""Session lifecycle endpoints: create, list, inspect, heartbeat, finish, resume."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from studio.routers.dependencies import (
    get_audio_store,
    get_ledger,
    get_monitor,
    get_planner,
    get_transcripts,
)
from studio.schemas.requests import CheckTimeoutsRequest, CreateSessionRequest, HeartbeatRequest
from studio.schemas.responses import (
    TRANSCRIPT_PREVIEW_SIZE,
    session_detail,
    session_summary,
    track_payload,
)
from studio.schemas.speaker import Speaker
from studio.services.audio_store import AudioChunkStore  # noqa: TC001
from studio.services.heartbeat_monitor import HeartbeatMonitor  # noqa: TC001
from studio.services.resume_planner import ResumePlanner  # noqa: TC001
from studio.services.session_ledger import DEFAULT_PAGE_SIZE, SessionLedger  # noqa: TC001
from studio.services.transcript_store import TranscriptStore  # noqa: TC001

router = APIRouter(prefix="/api", tags=["sessions"])


@router.post("/session")
def create_session(
    body: Optional[CreateSessionRequest] = None,
    ledger: SessionLedger = Depends(get_ledger),  # noqa: B008
) -> dict[str, Any]:
    """Start a session in ``active`` with empty segment-1 tracks for both speakers."""
    body = body or CreateSessionRequest()
    created = ledger.create(title=body.title, settings=body.settings_input())
    session = created.session
    return {
        "sessionId": session.id,
        "title": session.title,
        "status": session.status,
        "createdAt": session.created_at,
        "settings": session.settings.model_dump(),
        "humanAudioFile": created.tracks[Speaker.HUMAN].file_path,
        "aiAudioFile": created.tracks[Speaker.AI].file_path,
        "audioFiles": [track_payload(t) for t in created.tracks.values()],
    }


@router.get("/sessions")
def list_sessions(
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    ledger: SessionLedger = Depends(get_ledger),  # noqa: B008
) -> dict[str, Any]:
    page = ledger.list_page(limit=limit, offset=offset)
    return {
        "sessions": [session_summary(s) for s in page.sessions],
        "pagination": {
            "total": page.total,
            "limit": page.limit,
            "offset": page.offset,
            "hasMore": page.offset + len(page.sessions) < page.total,
        },
    }


@router.post("/session/check-timeouts")
def check_timeouts(
    body: Optional[CheckTimeoutsRequest] = None,
    monitor: HeartbeatMonitor = Depends(get_monitor),  # noqa: B008
) -> dict[str, Any]:
    """Demote stale ``active`` sessions to ``incomplete``. Meant for an external scheduler."""
    timeout_ms = body.timeout_ms if body is not None else None
    demoted = monitor.sweep(timeout_ms)
    return {
        "timedOut": demoted,
        "count": len(demoted),
        "timeoutMs": timeout_ms if timeout_ms is not None else monitor.default_timeout_ms,
    }


@router.get("/session/{session_id}")
def get_session(
    session_id: str,
    ledger: SessionLedger = Depends(get_ledger),  # noqa: B008
    audio: AudioChunkStore = Depends(get_audio_store),  # noqa: B008
    transcripts: TranscriptStore = Depends(get_transcripts),  # noqa: B008
) -> dict[str, Any]:
    session = ledger.get(session_id)
    preview = transcripts.list_page(session_id, limit=TRANSCRIPT_PREVIEW_SIZE, offset=0)
    return session_detail(
        session,
        tracks=audio.list_tracks(session_id),
        message_count=preview.total,
        preview=preview.messages,
    )


@router.post("/session/{session_id}/keepalive")
def keepalive(
    session_id: str,
    body: Optional[HeartbeatRequest] = None,
    monitor: HeartbeatMonitor = Depends(get_monitor),  # noqa: B008
) -> dict[str, Any]:
    session = monitor.heartbeat(session_id, body.ts if body is not None else None)
    return {
        "ok": True,
        "sessionId": session.id,
        "status": session.status,
        "lastHeartbeat": session.last_heartbeat,
        "updatedAt": session.updated_at,
    }


@router.post("/session/{session_id}/finish")
def finish_session(
    session_id: str,
    ledger: SessionLedger = Depends(get_ledger),  # noqa: B008
) -> dict[str, Any]:
    return session_summary(ledger.finish(session_id))


@router.post("/session/{session_id}/resume")
def resume_session(
    session_id: str,
    planner: ResumePlanner = Depends(get_planner),  # noqa: B008
) -> dict[str, Any]:
    """Open the next segment of an ``incomplete`` session.

    A session that cannot be resumed is not an error: the response carries
    ``canResume: false`` and a reason.
    """
    plan = planner.open_segment(session_id)
    payload: dict[str, Any] = {
        "canResume": plan.can_resume,
        "nextSegmentNumber": plan.next_segment_number,
    }
    if plan.reason is not None:
        payload["reason"] = plan.reason
    if plan.can_resume:
        payload["humanTrackPath"] = plan.track_paths[Speaker.HUMAN]
        payload["aiTrackPath"] = plan.track_paths[Speaker.AI]
    return payload


@router.get("/session/{session_id}/resume-context")
def resume_context(
    session_id: str,
    ledger: SessionLedger = Depends(get_ledger),  # noqa: B008
    planner: ResumePlanner = Depends(get_planner),  # noqa: B008
) -> dict[str, Any]:
    ledger.get(session_id)
    return planner.get_resume_context(session_id).to_payload()
