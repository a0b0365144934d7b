"""Per-session realtime settings.

A fully-specified, frozen value: partial input is parsed over the defaults once,
at session creation, and the result is never mutated afterwards.
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from studio.core.errors import InvalidRequestError

PROMPT_MAX_LENGTH = 5000

RealtimeModel = Literal[
    "gpt-realtime",
    "gpt-4o-realtime-preview",
    "gpt-4o-mini-realtime-preview",
]
RealtimeVoice = Literal[
    "alloy",
    "ash",
    "ballad",
    "cedar",
    "coral",
    "echo",
    "marin",
    "sage",
    "shimmer",
    "verse",
]


class SessionSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    model: RealtimeModel = "gpt-realtime"
    voice: RealtimeVoice = "cedar"
    temperature: float = Field(default=0.8, ge=0.0, le=1.0)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    language: str = Field(default="da-DK", min_length=2, max_length=35)
    silence_ms: int = Field(default=900, gt=0)
    persona_prompt: str = Field(default="", max_length=PROMPT_MAX_LENGTH)
    context_prompt: str = Field(default="", max_length=PROMPT_MAX_LENGTH)

    @classmethod
    def default(cls) -> "SessionSettings":
        return cls()

    @classmethod
    def parse(cls, data: Optional[dict[str, Any]]) -> "SessionSettings":
        """Parse possibly-partial input over the defaults.

        Raises:
            InvalidRequestError: naming the first offending field.
        """
        if data is None:
            return cls.default()
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise settings_error(exc) from None

    def instructions(self) -> str:
        """Persona and context prompts joined into one instruction block."""
        parts = [p.strip() for p in (self.persona_prompt, self.context_prompt) if p.strip()]
        return "\n\n".join(parts)


def settings_error(exc: ValidationError) -> InvalidRequestError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "settings"
    if first.get("type") in ("string_too_long", "string_too_short"):
        return InvalidRequestError(field, f"length must be at most {PROMPT_MAX_LENGTH} characters")
    return InvalidRequestError(field, first.get("msg", "invalid value"))
