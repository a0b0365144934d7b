"""
Offline Message Queue: client-side buffer for transcript messages that could
not be delivered.

Messages survive a restart through an injected ``KeyValueStore``. Replay is
strictly in original order and stops at the first failure so the store never
sees a later message before an earlier one it has not yet accepted.
"""
from __future__ import annotations

import json
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

import httpx

from studio.core.errors import InvalidRequestError, StudioError
from studio.core.logging import get_logger
from studio.schemas.speaker import normalize_speaker

if TYPE_CHECKING:
    from studio.services.transcript_store import TranscriptStore

logger = get_logger("offline_queue")

QUEUE_KEY_PREFIX = "transcript-queue-"
DEFAULT_SEND_TIMEOUT_S = 10.0

_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def queue_key(session_id: str) -> str:
    return f"{QUEUE_KEY_PREFIX}{session_id}"


# --- Durable key-value port ---


class KeyValueStore(Protocol):
    def load(self, key: str) -> Optional[Any]: ...

    def save(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def save(self, key: str, value: Any) -> None:
        # Serialized so callers can't mutate stored state through a shared reference
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileKeyValueStore:
    """One JSON document per key under ``directory``; writes are atomic renames."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY_RE.match(key):
            raise InvalidRequestError("key", "may only contain letters, digits, '.', '_' and '-'")
        return self._dir / f"{key}.json"

    def load(self, key: str) -> Optional[Any]:
        path = self._path(key)
        try:
            with open(path, encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as exc:
            logger.warning("queue_store_corrupt", key=key, path=str(path), error=str(exc))
            return None

    def save(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(value, fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# --- Messages and senders ---


@dataclass(frozen=True)
class PendingMessage:
    speaker: str
    text: str
    ts_ms: int
    raw_json: Any = None

    @property
    def dedup_key(self) -> tuple[int, str, str]:
        return (self.ts_ms, self.text, self.speaker)

    def to_payload(self) -> dict[str, Any]:
        return {
            "speaker": self.speaker,
            "text": self.text,
            "ts_ms": self.ts_ms,
            "raw_json": self.raw_json,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PendingMessage":
        return cls(
            speaker=normalize_speaker(payload["speaker"]).value,
            text=payload["text"],
            ts_ms=int(payload["ts_ms"]),
            raw_json=payload.get("raw_json"),
        )


MessageSender = Callable[[str, PendingMessage], None]

# Failures that mean "not delivered yet"; anything else is a programming error
DELIVERY_ERRORS: tuple[type[BaseException], ...] = (StudioError, httpx.HTTPError)


class HttpTranscriptSender:
    """Posts a message to ``POST /api/session/{id}/message``."""

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_SEND_TIMEOUT_S,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    def __call__(self, session_id: str, message: PendingMessage) -> None:
        response = self._client.post(
            f"/api/session/{session_id}/message",
            json=message.to_payload(),
        )
        response.raise_for_status()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class TranscriptStoreSender:
    """Writes straight into an in-process transcript store."""

    def __init__(self, store: TranscriptStore) -> None:
        self._store = store

    def __call__(self, session_id: str, message: PendingMessage) -> None:
        self._store.append(
            session_id,
            message.speaker,
            message.text,
            message.ts_ms,
            message.raw_json,
        )


# --- Queue ---


@dataclass(frozen=True)
class RetryResult:
    sent: int
    remaining: int


class OfflineMessageQueue:
    def __init__(self, store: KeyValueStore, session_id: str, sender: MessageSender) -> None:
        self._store = store
        self._session_id = session_id
        self._sender = sender
        self._key = queue_key(session_id)
        self._lock = threading.RLock()
        self._pending: list[PendingMessage] = self._load()

    @property
    def key(self) -> str:
        return self._key

    @property
    def pending(self) -> list[PendingMessage]:
        with self._lock:
            return list(self._pending)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def enqueue(self, message: PendingMessage) -> bool:
        """Queue ``message`` unless an identical (ts_ms, text, speaker) is already queued."""
        with self._lock:
            if any(m.dedup_key == message.dedup_key for m in self._pending):
                return False
            self._pending.append(message)
            self._persist()
        logger.info(
            "message_queued",
            session_id=self._session_id,
            ts_ms=message.ts_ms,
            speaker=message.speaker,
            queued=len(self),
        )
        return True

    def send(self, message: PendingMessage) -> bool:
        """Deliver now, or queue for later. Returns True if delivered."""
        try:
            self._sender(self._session_id, message)
        except DELIVERY_ERRORS as exc:
            logger.warning("message_send_failed", session_id=self._session_id, error=str(exc))
            self.enqueue(message)
            return False
        return True

    def retry_all(self) -> RetryResult:
        """Resend queued messages in order, stopping at the first failure."""
        with self._lock:
            sent = 0
            try:
                while self._pending:
                    message = self._pending[0]
                    try:
                        self._sender(self._session_id, message)
                    except DELIVERY_ERRORS as exc:
                        logger.warning(
                            "queue_retry_stopped",
                            session_id=self._session_id,
                            ts_ms=message.ts_ms,
                            error=str(exc),
                        )
                        break
                    # Delivered messages leave the queue even if a later send raises
                    self._pending.pop(0)
                    sent += 1
            finally:
                if sent:
                    self._persist()
            remaining = len(self._pending)

        if sent:
            logger.info("queue_flushed", session_id=self._session_id, sent=sent, remaining=remaining)
        return RetryResult(sent=sent, remaining=remaining)

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()
            self._persist()

    def _load(self) -> list[PendingMessage]:
        stored = self._store.load(self._key)
        if not stored:
            return []
        messages: list[PendingMessage] = []
        seen: set[tuple[int, str, str]] = set()
        for payload in stored:
            message = PendingMessage.from_payload(payload)
            if message.dedup_key not in seen:
                seen.add(message.dedup_key)
                messages.append(message)
        return messages

    def _persist(self) -> None:
        if self._pending:
            self._store.save(self._key, [m.to_payload() for m in self._pending])
        else:
            self._store.delete(self._key)
