"""Request bodies accepted by the HTTP layer."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class CreateSessionRequest(BaseModel):
    title: str = ""
    settings: Optional[dict[str, Any]] = None
    # Accepted at top level too; merged into settings
    persona_prompt: Optional[str] = None
    context_prompt: Optional[str] = None

    def settings_input(self) -> dict[str, Any]:
        merged = dict(self.settings or {})
        if self.persona_prompt is not None:
            merged["persona_prompt"] = self.persona_prompt
        if self.context_prompt is not None:
            merged["context_prompt"] = self.context_prompt
        return merged


class HeartbeatRequest(BaseModel):
    ts: Optional[StrictInt] = None


class CheckTimeoutsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timeout_ms: Optional[StrictInt] = Field(default=None, alias="timeoutMs")


class CreateMessageRequest(BaseModel):
    speaker: str
    text: str = Field(min_length=1)
    ts_ms: StrictInt = Field(ge=0)
    raw_json: Any = None


class RealtimeTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
