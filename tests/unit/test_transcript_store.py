"""Transcript Store: validation and ts_ms ordering."""

from __future__ import annotations

import random

import pytest

from studio.core.errors import InvalidRequestError, InvalidSpeakerError, SessionNotFoundError
from studio.schemas.speaker import Speaker


class TestAppend:
    def test_returns_stored_message(self, transcripts, session_id, clock) -> None:
        raw = {"type": "conversation.item.input_audio_transcription.completed", "text": "Hej"}
        message = transcripts.append(session_id, "human", "Hej", 1000, raw)
        assert message.id > 0
        assert message.speaker is Speaker.HUMAN
        assert message.raw_json == raw
        assert message.created_at == clock.now

    def test_unknown_session(self, transcripts) -> None:
        with pytest.raises(SessionNotFoundError):
            transcripts.append("missing", "ai", "hi", 0)

    def test_invalid_speaker(self, transcripts, session_id) -> None:
        with pytest.raises(InvalidSpeakerError):
            transcripts.append(session_id, "host", "hi", 0)

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text(self, transcripts, session_id, text) -> None:
        with pytest.raises(InvalidRequestError, match="text"):
            transcripts.append(session_id, "ai", text, 0)

    @pytest.mark.parametrize("ts_ms", [-1, -100, 1.5, True, "10"])
    def test_bad_timestamp(self, transcripts, session_id, ts_ms) -> None:
        with pytest.raises(InvalidRequestError, match="tsMs"):
            transcripts.append(session_id, "ai", "hi", ts_ms)

    def test_zero_timestamp_allowed(self, transcripts, session_id) -> None:
        assert transcripts.append(session_id, "ai", "first", 0).ts_ms == 0


class TestOrdering:
    def test_out_of_order_arrival(self, transcripts, session_id) -> None:
        transcripts.append(session_id, "human", "A", 1500)
        transcripts.append(session_id, "ai", "B", 1000)

        listed = transcripts.list(session_id)
        assert [(m.text, m.ts_ms) for m in listed] == [("B", 1000), ("A", 1500)]

    def test_ties_keep_arrival_order(self, transcripts, session_id) -> None:
        transcripts.append(session_id, "human", "first", 2000)
        transcripts.append(session_id, "ai", "second", 2000)
        transcripts.append(session_id, "human", "first", 2000)

        assert [m.text for m in transcripts.list(session_id)] == ["first", "second", "first"]

    def test_shuffled_arrivals_sorted(self, transcripts, session_id) -> None:
        stamps = list(range(0, 5000, 250))
        shuffled = stamps[:]
        random.Random(7).shuffle(shuffled)
        for ts in shuffled:
            transcripts.append(session_id, "ai", f"m{ts}", ts)

        assert [m.ts_ms for m in transcripts.list(session_id)] == stamps

    def test_sessions_isolated(self, transcripts, ledger, session_id) -> None:
        other = ledger.create(title="other").session.id
        transcripts.append(other, "ai", "elsewhere", 1)
        assert transcripts.list(session_id) == []
        assert transcripts.count(other) == 1


class TestPagination:
    def test_pages_follow_sorted_order(self, transcripts, session_id) -> None:
        for ts in (500, 100, 400, 200, 300):
            transcripts.append(session_id, "human", f"t{ts}", ts)

        first = transcripts.list_page(session_id, limit=2, offset=0)
        assert [m.ts_ms for m in first.messages] == [100, 200]
        assert first.total == 5
        assert first.has_more

        last = transcripts.list_page(session_id, limit=2, offset=4)
        assert [m.ts_ms for m in last.messages] == [500]
        assert not last.has_more

    def test_unknown_session(self, transcripts) -> None:
        with pytest.raises(SessionNotFoundError):
            transcripts.list_page("missing")
