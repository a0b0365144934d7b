"""Typed exceptions for the recording studio core.

Hierarchy:
    StudioError (base)
    +-- NotFoundError
    |   +-- SessionNotFoundError
    |   +-- AudioFileNotFoundError
    +-- InvalidStateError
    +-- InvalidRequestError
    |   +-- InvalidSpeakerError
    +-- DuplicateTrackError
    +-- AudioIOError
    +-- UpstreamError
        +-- UpstreamNotConfiguredError
        +-- UpstreamRequestError
"""
from __future__ import annotations


class StudioError(Exception):
    """Base for all studio exceptions."""

    code = "internal_error"


# --- Lookup ---


class NotFoundError(StudioError):
    """A session or one of its tracks does not exist."""

    code = "not_found"


class SessionNotFoundError(NotFoundError):
    code = "session_not_found"

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Session not found")


class AudioFileNotFoundError(NotFoundError):
    code = "audio_file_not_found"

    def __init__(self, session_id: str, speaker: str) -> None:
        self.session_id = session_id
        self.speaker = speaker
        super().__init__("Audio file not found")


# --- State machine ---


class InvalidStateError(StudioError):
    """Operation is not legal for the current status of a session or track.

    The message always names the current status.
    """

    code = "invalid_state"

    def __init__(self, operation: str, current_status: str, detail: str | None = None) -> None:
        self.operation = operation
        self.current_status = current_status
        msg = f"Cannot {operation}: status is '{current_status}'"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


# --- Input ---


class InvalidRequestError(StudioError):
    """Malformed input reached the core. The message names the offending field."""

    code = "invalid_request"

    def __init__(self, field: str, detail: str, message: str | None = None) -> None:
        self.field = field
        self.detail = detail
        super().__init__(message or f"Invalid {field}: {detail}")


class InvalidSpeakerError(InvalidRequestError):
    code = "invalid_speaker"

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(
            "speaker",
            "expected 'human' or 'ai'",
            message=f"Invalid speaker: {value!r}",
        )


# --- Storage ---


class DuplicateTrackError(StudioError):
    code = "duplicate_track"

    def __init__(self, session_id: str, speaker: str, segment_number: int) -> None:
        self.session_id = session_id
        self.speaker = speaker
        self.segment_number = segment_number
        super().__init__(
            f"Track already exists for session '{session_id}', "
            f"speaker '{speaker}', segment {segment_number}"
        )


class AudioIOError(StudioError):
    """Filesystem failure while appending, reading or rewriting a track."""

    code = "audio_io_error"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Audio file I/O failed for '{path}': {reason}")


# --- Upstream realtime provider ---


class UpstreamError(StudioError):
    code = "upstream_error"


class UpstreamNotConfiguredError(UpstreamError):
    code = "upstream_not_configured"

    def __init__(self, credential: str) -> None:
        self.credential = credential
        super().__init__(f"{credential} not configured")


class UpstreamRequestError(UpstreamError):
    code = "upstream_request_failed"

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        msg = f"Realtime provider request failed: {reason}"
        if status_code is not None:
            msg += f" (status {status_code})"
        super().__init__(msg)
