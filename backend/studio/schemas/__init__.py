"""Value types shared by the core and the HTTP adapters."""
from studio.schemas.settings import PROMPT_MAX_LENGTH, SessionSettings
from studio.schemas.speaker import LEGACY_SPEAKER_ALIASES, Speaker, normalize_speaker

__all__ = [
    "LEGACY_SPEAKER_ALIASES",
    "PROMPT_MAX_LENGTH",
    "SessionSettings",
    "Speaker",
    "normalize_speaker",
]
