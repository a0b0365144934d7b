"""
Audio Chunk Store: append-only raw PCM per (session, speaker, segment), wrapped
into a standalone WAV file on finalize.

Appends and finalize for one (session, speaker) are serialized by a keyed lock;
the byte stream on disk is never written by two callers at once.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio.core.errors import (
    AudioFileNotFoundError,
    AudioIOError,
    DuplicateTrackError,
    InvalidRequestError,
    InvalidStateError,
    SessionNotFoundError,
)
from studio.core.locks import KeyedLock
from studio.core.logging import get_logger
from studio.db.session import SessionFactory, session_scope
from studio.models import AudioFile, now_ms
from studio.repositories import audio_repo
from studio.repositories.session_repo import get_session_row
from studio.schemas.speaker import Speaker
from studio.services.wav import pcm_duration_seconds, wrap_pcm

logger = get_logger("audio_store")

AUDIO_CONTENT_TYPE = "audio/wav"
DEFAULT_FORMAT = "wav"
STREAM_CHUNK_SIZE = 64 * 1024

_SEGMENT_RE = re.compile(r"_segment_(\d+)\.wav$")


def track_filename(speaker: Speaker, segment_number: int) -> str:
    if segment_number == 1:
        return f"{speaker.value}.wav"
    return f"{speaker.value}_segment_{segment_number}.wav"


def segment_from_path(file_path: str) -> int:
    """Segment encoded in a track path; paths without a suffix are segment 1."""
    match = _SEGMENT_RE.search(file_path)
    if match:
        return int(match.group(1))
    return 1


@dataclass(frozen=True)
class AppendResult:
    total_size: int


@dataclass(frozen=True)
class TrackInfo:
    speaker: Speaker
    segment_number: int
    file_path: str
    size: int
    format: str
    duration: float | None
    finalized: bool

    @classmethod
    def from_row(cls, row: AudioFile) -> "TrackInfo":
        return cls(
            speaker=Speaker(row.speaker),
            segment_number=row.segment_number,
            file_path=row.file_path,
            size=row.size,
            format=row.format,
            duration=row.duration,
            finalized=row.finalized,
        )


@dataclass(frozen=True)
class TrackStream:
    path: Path
    size: int
    content_type: str = AUDIO_CONTENT_TYPE

    def iter_bytes(self, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
        try:
            with open(self.path, "rb") as fh:
                while True:
                    chunk = fh.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as exc:
            raise AudioIOError(str(self.path), str(exc)) from exc


class AudioChunkStore:
    def __init__(
        self,
        session_factory: SessionFactory,
        sessions_dir: str | Path,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._factory = session_factory
        self._root = Path(sessions_dir)
        self._clock = clock
        self._locks = KeyedLock()

    @property
    def sessions_dir(self) -> Path:
        return self._root

    def track_path(self, session_id: str, speaker: Speaker, segment_number: int) -> Path:
        return self._root / session_id / track_filename(speaker, segment_number)

    # --- Track allocation ---

    def allocate_track(
        self,
        db: Session,
        session_id: str,
        speaker: Speaker,
        segment_number: int,
    ) -> AudioFile:
        """Insert the row and create the zero-byte file inside the caller's transaction."""
        if segment_number < 1:
            raise InvalidRequestError("segment_number", "segments start at 1")
        if audio_repo.get_track(db, session_id, speaker.value, segment_number) is not None:
            raise DuplicateTrackError(session_id, speaker.value, segment_number)

        path = self.track_path(session_id, speaker, segment_number)
        now = self._clock()
        row = AudioFile(
            session_id=session_id,
            speaker=speaker.value,
            file_path=str(path),
            segment_number=segment_number,
            size=0,
            format=DEFAULT_FORMAT,
            finalized=False,
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        try:
            db.flush()
        except IntegrityError as exc:
            raise DuplicateTrackError(session_id, speaker.value, segment_number) from exc

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" refuses to clobber bytes left behind by an earlier attempt
            with open(path, "xb"):
                pass
        except FileExistsError as exc:
            raise DuplicateTrackError(session_id, speaker.value, segment_number) from exc
        except OSError as exc:
            raise AudioIOError(str(path), str(exc)) from exc

        logger.info(
            "track_created",
            session_id=session_id,
            speaker=speaker.value,
            segment_number=segment_number,
            file_path=str(path),
        )
        return row

    def create_track(
        self, session_id: str, speaker: Speaker | str, segment_number: int = 1
    ) -> TrackInfo:
        speaker = Speaker.coerce(speaker)
        with self._locks.hold((session_id, speaker.value)):
            with session_scope(self._factory) as db:
                if get_session_row(db, session_id) is None:
                    raise SessionNotFoundError(session_id)
                row = self.allocate_track(db, session_id, speaker, segment_number)
                return TrackInfo.from_row(row)

    # --- Recording ---

    def append_chunk(self, session_id: str, speaker: Speaker | str, data: bytes) -> AppendResult:
        """Append raw bytes to the current segment; returns the new on-disk size."""
        speaker = Speaker.coerce(speaker)
        with self._locks.hold((session_id, speaker.value)):
            with session_scope(self._factory) as db:
                track = self._current_track(db, session_id, speaker)
                if track.finalized:
                    raise InvalidStateError("append audio", "finalized", f"{speaker.value} track")
                try:
                    with open(track.file_path, "ab") as fh:
                        fh.write(data)
                        fh.flush()
                        total = fh.tell()
                except OSError as exc:
                    logger.error(
                        "chunk_append_failed",
                        session_id=session_id,
                        speaker=speaker.value,
                        error=str(exc),
                    )
                    raise AudioIOError(track.file_path, str(exc)) from exc

                track.size = max(track.size, total)
                track.updated_at = self._clock()
                logger.debug(
                    "chunk_appended",
                    session_id=session_id,
                    speaker=speaker.value,
                    chunk_bytes=len(data),
                    total_size=track.size,
                )
                return AppendResult(total_size=track.size)

    def finalize(self, session_id: str, speaker: Speaker | str) -> TrackInfo:
        """Wrap the accumulated PCM with a WAV header, replacing the raw file.

        A track can be finalized once; a second call raises InvalidStateError
        instead of wrapping the header a second time.
        """
        speaker = Speaker.coerce(speaker)
        with self._locks.hold((session_id, speaker.value)):
            with session_scope(self._factory) as db:
                track = self._current_track(db, session_id, speaker)
                if track.finalized:
                    raise InvalidStateError("finalize track", "finalized", f"{speaker.value} track")

                path = Path(track.file_path)
                try:
                    raw = path.read_bytes()
                except OSError as exc:
                    raise AudioIOError(track.file_path, str(exc)) from exc
                try:
                    wav = wrap_pcm(raw)
                except ValueError as exc:
                    raise AudioIOError(track.file_path, str(exc)) from exc

                track.size = max(track.size, len(wav))
                track.duration = pcm_duration_seconds(len(raw))
                track.format = DEFAULT_FORMAT
                track.finalized = True
                track.updated_at = self._clock()
                db.flush()

                tmp_path = path.with_name(path.name + ".tmp")
                try:
                    with open(tmp_path, "wb") as fh:
                        fh.write(wav)
                        fh.flush()
                        os.fsync(fh.fileno())
                    os.replace(tmp_path, path)
                except OSError as exc:
                    raise AudioIOError(track.file_path, str(exc)) from exc

                logger.info(
                    "track_finalized",
                    session_id=session_id,
                    speaker=speaker.value,
                    segment_number=track.segment_number,
                    pcm_bytes=len(raw),
                    size=track.size,
                )
                return TrackInfo.from_row(track)

    # --- Reads ---

    def info(
        self, session_id: str, speaker: Speaker | str, segment_number: int | None = None
    ) -> TrackInfo:
        speaker = Speaker.coerce(speaker)
        with session_scope(self._factory) as db:
            row = self._lookup(db, session_id, speaker, segment_number)
            if row is None:
                raise AudioFileNotFoundError(session_id, speaker.value)
            return TrackInfo.from_row(row)

    def list_tracks(self, session_id: str) -> list[TrackInfo]:
        with session_scope(self._factory) as db:
            return [TrackInfo.from_row(r) for r in audio_repo.list_tracks(db, session_id)]

    def stream(
        self, session_id: str, speaker: Speaker | str, segment_number: int | None = None
    ) -> TrackStream:
        speaker = Speaker.coerce(speaker)
        with session_scope(self._factory) as db:
            if get_session_row(db, session_id) is None:
                raise SessionNotFoundError(session_id)
            row = self._lookup(db, session_id, speaker, segment_number)
            if row is None:
                raise AudioFileNotFoundError(session_id, speaker.value)
            path = Path(row.file_path)
        if not path.is_file():
            raise AudioFileNotFoundError(session_id, speaker.value)
        return TrackStream(path=path, size=path.stat().st_size)

    # --- Internals ---

    def _lookup(
        self, db: Session, session_id: str, speaker: Speaker, segment_number: int | None
    ) -> AudioFile | None:
        if segment_number is None:
            return audio_repo.get_current_track(db, session_id, speaker.value)
        return audio_repo.get_track(db, session_id, speaker.value, segment_number)

    def _current_track(self, db: Session, session_id: str, speaker: Speaker) -> AudioFile:
        if get_session_row(db, session_id) is None:
            raise SessionNotFoundError(session_id)
        track = audio_repo.get_current_track(db, session_id, speaker.value)
        if track is None:
            raise AudioFileNotFoundError(session_id, speaker.value)
        return track
