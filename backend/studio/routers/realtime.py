"""POST /api/realtime/token: ephemeral client secret for the browser."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from studio.routers.dependencies import get_realtime
from studio.schemas.requests import RealtimeTokenRequest
from studio.services.realtime import RealtimeTokenService  # noqa: TC001

router = APIRouter(prefix="/api/realtime", tags=["realtime"])


@router.post("/token")
def create_token(
    body: Optional[RealtimeTokenRequest] = None,
    realtime: RealtimeTokenService = Depends(get_realtime),  # noqa: B008
) -> dict[str, Any]:
    session_id = body.session_id if body is not None else None
    return realtime.mint(session_id).to_payload()
