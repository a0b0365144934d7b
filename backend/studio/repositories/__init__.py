from studio.repositories.audio_repo import get_current_track, get_track, list_tracks
from studio.repositories.message_repo import count_messages, insert_message, list_messages
from studio.repositories.migration_repo import migrate_legacy_speakers
from studio.repositories.session_repo import (
    count_sessions,
    find_stale_session_ids,
    get_session_row,
    list_session_rows,
)

__all__ = [
    "count_messages",
    "count_sessions",
    "find_stale_session_ids",
    "get_current_track",
    "get_session_row",
    "get_track",
    "insert_message",
    "list_messages",
    "list_session_rows",
    "list_tracks",
    "migrate_legacy_speakers",
]
