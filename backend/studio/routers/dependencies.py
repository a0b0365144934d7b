"""FastAPI dependencies resolving core components from ``app.state.services``."""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request  # noqa: TC002

if TYPE_CHECKING:
    from studio.services.audio_store import AudioChunkStore
    from studio.services.container import StudioServices
    from studio.services.exports import TranscriptExporter
    from studio.services.heartbeat_monitor import HeartbeatMonitor
    from studio.services.realtime import RealtimeTokenService
    from studio.services.resume_planner import ResumePlanner
    from studio.services.session_ledger import SessionLedger
    from studio.services.transcript_store import TranscriptStore


def get_services(request: Request) -> StudioServices:
    return request.app.state.services  # type: ignore[no-any-return]


def get_ledger(request: Request) -> SessionLedger:
    return get_services(request).ledger


def get_monitor(request: Request) -> HeartbeatMonitor:
    return get_services(request).monitor


def get_audio_store(request: Request) -> AudioChunkStore:
    return get_services(request).audio


def get_transcripts(request: Request) -> TranscriptStore:
    return get_services(request).transcripts


def get_planner(request: Request) -> ResumePlanner:
    return get_services(request).planner


def get_exporter(request: Request) -> TranscriptExporter:
    return get_services(request).exporter


def get_realtime(request: Request) -> RealtimeTokenService:
    return get_services(request).realtime
