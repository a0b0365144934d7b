"""Transcript message endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from studio.routers.dependencies import get_transcripts
from studio.schemas.requests import CreateMessageRequest
from studio.schemas.responses import message_payload
from studio.schemas.speaker import normalize_speaker
from studio.services.session_ledger import DEFAULT_PAGE_SIZE
from studio.services.transcript_store import TranscriptStore  # noqa: TC001

router = APIRouter(prefix="/api/session", tags=["messages"])


@router.post("/{session_id}/message")
def create_message(
    session_id: str,
    body: CreateMessageRequest,
    transcripts: TranscriptStore = Depends(get_transcripts),  # noqa: B008
) -> dict[str, Any]:
    message = transcripts.append(
        session_id,
        normalize_speaker(body.speaker),
        body.text,
        body.ts_ms,
        body.raw_json,
    )
    return message_payload(message)


@router.get("/{session_id}/messages")
def list_messages(
    session_id: str,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    transcripts: TranscriptStore = Depends(get_transcripts),  # noqa: B008
) -> dict[str, Any]:
    """Messages ordered by ``ts_ms``, ties in arrival order."""
    page = transcripts.list_page(session_id, limit=limit, offset=offset)
    return {
        "messages": [message_payload(m) for m in page.messages],
        "total": page.total,
        "limit": page.limit,
        "offset": page.offset,
        "hasMore": page.has_more,
    }
