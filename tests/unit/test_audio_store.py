"""Audio Chunk Store: track allocation, appends, finalize, reads."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from studio.core.errors import (
    AudioFileNotFoundError,
    AudioIOError,
    DuplicateTrackError,
    InvalidRequestError,
    InvalidSpeakerError,
    InvalidStateError,
    SessionNotFoundError,
)
from studio.schemas.speaker import Speaker
from studio.services import wav
from studio.services.audio_store import segment_from_path, track_filename


class TestNaming:
    def test_first_segment_has_no_suffix(self) -> None:
        assert track_filename(Speaker.HUMAN, 1) == "human.wav"
        assert track_filename(Speaker.AI, 1) == "ai.wav"

    def test_later_segments_are_suffixed(self) -> None:
        assert track_filename(Speaker.AI, 3) == "ai_segment_3.wav"

    def test_segment_parsed_from_path(self) -> None:
        assert segment_from_path("sessions/abc/human_segment_2.wav") == 2
        assert segment_from_path("sessions/abc/human.wav") == 1
        assert segment_from_path("sessions/abc/mikkel.wav") == 1


class TestCreateTrack:
    def test_session_creation_allocates_both_tracks(self, audio_store, session_id) -> None:
        tracks = audio_store.list_tracks(session_id)
        assert sorted(t.speaker.value for t in tracks) == ["ai", "human"]
        for track in tracks:
            assert track.size == 0
            assert track.segment_number == 1
            assert track.format == "wav"
            assert not track.finalized
            assert Path(track.file_path).is_file()
            assert Path(track.file_path).stat().st_size == 0

    def test_duplicate_segment_rejected(self, audio_store, session_id) -> None:
        with pytest.raises(DuplicateTrackError):
            audio_store.create_track(session_id, Speaker.HUMAN, 1)

    def test_new_segment_gets_suffixed_file(self, audio_store, session_id) -> None:
        track = audio_store.create_track(session_id, "human", 2)
        assert track.file_path.endswith("human_segment_2.wav")

    def test_segment_zero_rejected(self, audio_store, session_id) -> None:
        with pytest.raises(InvalidRequestError):
            audio_store.create_track(session_id, Speaker.AI, 0)

    def test_unknown_session(self, audio_store) -> None:
        with pytest.raises(SessionNotFoundError):
            audio_store.create_track("missing", Speaker.AI, 1)


class TestAppendAndFinalize:
    def test_two_appends_then_finalize(self, audio_store, session_id) -> None:
        first = b"\x01\x02" * 512
        second = b"\x03\x04" * 256

        assert audio_store.append_chunk(session_id, "human", first).total_size == 1024
        assert audio_store.append_chunk(session_id, "human", second).total_size == 1536

        finalized = audio_store.finalize(session_id, Speaker.HUMAN)
        assert finalized.finalized

        info = audio_store.info(session_id, "human")
        assert info.size == 44 + 1536 == 1580
        assert info.format == "wav"
        assert info.duration == pytest.approx(1536 / 96000)

        data = Path(info.file_path).read_bytes()
        assert len(data) == 1580
        assert data[44:] == first + second

    def test_concurrent_appends_do_not_interleave(self, audio_store, session_id) -> None:
        chunks = [bytes([i]) * 4096 for i in range(1, 9)]
        start = threading.Barrier(len(chunks))
        errors: list[Exception] = []

        def append(chunk: bytes) -> None:
            try:
                start.wait(timeout=5)
                audio_store.append_chunk(session_id, "human", chunk)
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=append, args=(c,)) for c in chunks]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        info = audio_store.info(session_id, "human")
        assert info.size == sum(len(c) for c in chunks)
        data = Path(info.file_path).read_bytes()
        assert len(data) == info.size
        pieces = [data[i : i + 4096] for i in range(0, len(data), 4096)]
        assert sorted(pieces) == sorted(chunks)

    def test_oversized_payload_is_io_failure(self, audio_store, session_id, monkeypatch) -> None:
        monkeypatch.setattr(wav, "MAX_DATA_SIZE", 4)
        audio_store.append_chunk(session_id, "ai", b"\x00" * 6)

        with pytest.raises(AudioIOError, match="cannot be wrapped"):
            audio_store.finalize(session_id, "ai")

        info = audio_store.info(session_id, "ai")
        assert not info.finalized
        assert info.size == 6

    def test_finalize_without_chunks_is_minimal_wav(self, audio_store, session_id) -> None:
        info = audio_store.finalize(session_id, "ai")
        data = Path(info.file_path).read_bytes()
        assert len(data) == 44
        assert data[0:4] == b"RIFF"
        assert data[8:12] == b"WAVE"

    def test_second_finalize_fails(self, audio_store, session_id) -> None:
        audio_store.append_chunk(session_id, "ai", b"\x00" * 10)
        audio_store.finalize(session_id, "ai")
        with pytest.raises(InvalidStateError, match="finalized"):
            audio_store.finalize(session_id, "ai")
        assert audio_store.info(session_id, "ai").size == 54

    def test_append_after_finalize_fails(self, audio_store, session_id) -> None:
        audio_store.finalize(session_id, "human")
        with pytest.raises(InvalidStateError):
            audio_store.append_chunk(session_id, "human", b"\x00\x00")

    def test_speakers_are_independent(self, audio_store, session_id) -> None:
        audio_store.append_chunk(session_id, "human", b"h" * 4)
        audio_store.append_chunk(session_id, "ai", b"a" * 6)
        assert audio_store.info(session_id, "human").size == 4
        assert audio_store.info(session_id, "ai").size == 6

    def test_append_targets_latest_segment(self, audio_store, session_id) -> None:
        audio_store.append_chunk(session_id, "human", b"old")
        audio_store.finalize(session_id, "human")
        audio_store.create_track(session_id, "human", 2)

        assert audio_store.append_chunk(session_id, "human", b"new!").total_size == 4
        assert audio_store.info(session_id, "human", 1).size == 47
        assert audio_store.info(session_id, "human").segment_number == 2

    def test_invalid_speaker(self, audio_store, session_id) -> None:
        with pytest.raises(InvalidSpeakerError, match="Invalid speaker"):
            audio_store.append_chunk(session_id, "narrator", b"\x00")

    def test_unknown_session(self, audio_store) -> None:
        with pytest.raises(SessionNotFoundError):
            audio_store.append_chunk("missing", "human", b"\x00")


class TestReads:
    def test_info_unknown_track(self, audio_store) -> None:
        with pytest.raises(AudioFileNotFoundError, match="Audio file not found"):
            audio_store.info("missing", "human")

    def test_stream_returns_file_bytes(self, audio_store, session_id) -> None:
        audio_store.append_chunk(session_id, "ai", b"\x10" * 100)
        audio_store.finalize(session_id, "ai")

        stream = audio_store.stream(session_id, "ai")
        assert stream.content_type == "audio/wav"
        assert stream.size == 144
        assert b"".join(stream.iter_bytes(chunk_size=7)).startswith(b"RIFF")

    def test_stream_unknown_session(self, audio_store) -> None:
        with pytest.raises(SessionNotFoundError):
            audio_store.stream("missing", "ai")

    def test_stream_missing_file(self, audio_store, session_id) -> None:
        Path(audio_store.info(session_id, "ai").file_path).unlink()
        with pytest.raises(AudioFileNotFoundError):
            audio_store.stream(session_id, "ai")
