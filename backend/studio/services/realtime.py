"""
Ephemeral client secrets for the upstream realtime provider.

The browser never sees the server's API key; it receives a short-lived client
secret minted here. When a session id is supplied, the provider session is
seeded from that session's frozen settings.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from studio.core.errors import UpstreamNotConfiguredError, UpstreamRequestError
from studio.core.logging import get_logger
from studio.schemas.settings import SessionSettings
from studio.services.session_ledger import SessionLedger

logger = get_logger("realtime")

API_KEY_NAME = "OPENAI_API_KEY"
TRANSCRIPTION_MODEL = "whisper-1"


@dataclass(frozen=True)
class RealtimeToken:
    token: str
    expires_at: Optional[int] = None
    model: Optional[str] = None
    voice: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"token": self.token}
        if self.expires_at is not None:
            payload["expiresAt"] = self.expires_at
        if self.model is not None:
            payload["model"] = self.model
        if self.voice is not None:
            payload["voice"] = self.voice
        return payload


def build_session_payload(settings: SessionSettings) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": settings.model,
        "voice": settings.voice,
        "temperature": settings.temperature,
        "turn_detection": {
            "type": "server_vad",
            "silence_duration_ms": settings.silence_ms,
        },
        "input_audio_transcription": {
            "model": TRANSCRIPTION_MODEL,
            "language": settings.language.split("-")[0].lower(),
        },
    }
    instructions = settings.instructions()
    if instructions:
        payload["instructions"] = instructions
    return payload


def _extract_secret(data: Any) -> tuple[str, Optional[int]]:
    secret = data.get("client_secret") if isinstance(data, dict) else None
    # Older responses carry a bare string; current ones an object with value/expires_at
    if isinstance(secret, dict):
        value = secret.get("value")
        expires_at = secret.get("expires_at")
    else:
        value, expires_at = secret, None
    if not isinstance(value, str) or not value:
        raise UpstreamRequestError("no client_secret in provider response")
    return value, expires_at if isinstance(expires_at, int) else None


class RealtimeTokenService:
    def __init__(
        self,
        api_key: Optional[str],
        url: str,
        timeout: float = 10.0,
        ledger: SessionLedger | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._ledger = ledger
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def mint(self, session_id: str | None = None) -> RealtimeToken:
        """Request a client secret from the provider.

        Raises:
            UpstreamNotConfiguredError: No API key is configured.
            SessionNotFoundError: ``session_id`` was given but is unknown.
            UpstreamRequestError: Transport failure or non-2xx from the provider.
        """
        if not self._api_key:
            raise UpstreamNotConfiguredError(API_KEY_NAME)

        payload: dict[str, Any] = {}
        if session_id is not None and self._ledger is not None:
            payload = build_session_payload(self._ledger.get(session_id).settings)

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self._client is not None:
                response = self._client.post(self._url, json=payload, headers=headers, timeout=self._timeout)
            else:
                response = httpx.post(self._url, json=payload, headers=headers, timeout=self._timeout)
        except httpx.HTTPError as exc:
            logger.error("realtime_token_failed", error=str(exc))
            raise UpstreamRequestError(str(exc)) from exc

        if response.status_code >= 400:
            logger.error("realtime_token_rejected", status_code=response.status_code)
            raise UpstreamRequestError("provider rejected the request", response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamRequestError("provider returned invalid JSON") from exc

        token, expires_at = _extract_secret(data)
        logger.info("realtime_token_minted", session_id=session_id, model=payload.get("model"))
        return RealtimeToken(
            token=token,
            expires_at=expires_at,
            model=payload.get("model") or data.get("model"),
            voice=payload.get("voice") or data.get("voice"),
        )
