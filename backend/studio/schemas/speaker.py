"""Canonical speaker roles and legacy alias normalization.

The core only ever sees ``Speaker.HUMAN`` / ``Speaker.AI``. Older clients and
rows written before the rename use ``mikkel`` / ``freja``; those are mapped
here, at the adapter boundary, and never stored again.
"""
from __future__ import annotations

from enum import Enum

from studio.core.errors import InvalidSpeakerError


class Speaker(str, Enum):
    HUMAN = "human"
    AI = "ai"

    @classmethod
    def coerce(cls, value: "Speaker | str") -> "Speaker":
        """Accept only canonical values; raise InvalidSpeakerError otherwise."""
        if isinstance(value, Speaker):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidSpeakerError(value) from None


LEGACY_SPEAKER_ALIASES: dict[str, Speaker] = {
    "mikkel": Speaker.HUMAN,
    "freja": Speaker.AI,
}


def normalize_speaker(value: "Speaker | str") -> Speaker:
    """Map a canonical or legacy speaker name to ``Speaker``."""
    if isinstance(value, Speaker):
        return value
    if isinstance(value, str):
        alias = LEGACY_SPEAKER_ALIASES.get(value.strip().lower())
        if alias is not None:
            return alias
        return Speaker.coerce(value.strip().lower())
    raise InvalidSpeakerError(value)
