"""Wires the core components over one engine and one sessions directory."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import httpx
from sqlalchemy.engine import Engine

from studio.core.config import Settings, get_settings
from studio.core.logging import get_logger
from studio.db.session import build_engine, build_session_factory, init_db
from studio.models import now_ms
from studio.services.audio_store import AudioChunkStore
from studio.services.exports import TranscriptExporter
from studio.services.heartbeat_monitor import HeartbeatMonitor
from studio.services.notifications import ListenerNotifier
from studio.services.realtime import RealtimeTokenService
from studio.services.resume_planner import ResumePlanner
from studio.services.session_ledger import SessionLedger
from studio.services.transcript_store import TranscriptStore

logger = get_logger("container")


@dataclass
class StudioServices:
    engine: Engine
    notifier: ListenerNotifier
    audio: AudioChunkStore
    ledger: SessionLedger
    monitor: HeartbeatMonitor
    transcripts: TranscriptStore
    planner: ResumePlanner
    exporter: TranscriptExporter
    realtime: RealtimeTokenService

    def close(self) -> None:
        self.notifier.close()
        self.engine.dispose()


def build_services(
    settings: Settings | None = None,
    clock: Callable[[], int] = now_ms,
    notifier: ListenerNotifier | None = None,
    http_client: httpx.Client | None = None,
) -> StudioServices:
    settings = settings or get_settings()

    engine = build_engine(settings.database_url)
    init_db(engine)
    factory = build_session_factory(engine)
    Path(settings.sessions_dir).mkdir(parents=True, exist_ok=True)

    if notifier is None:
        notifier = ListenerNotifier.with_thread_pool(settings.notification_workers)

    audio = AudioChunkStore(factory, settings.sessions_dir, clock=clock)
    ledger = SessionLedger(factory, audio, notifier=notifier, clock=clock)
    transcripts = TranscriptStore(factory, clock=clock)

    services = StudioServices(
        engine=engine,
        notifier=notifier,
        audio=audio,
        ledger=ledger,
        monitor=HeartbeatMonitor(ledger, settings.heartbeat_timeout_ms),
        transcripts=transcripts,
        planner=ResumePlanner(factory, audio),
        exporter=TranscriptExporter(ledger, transcripts, clock=clock),
        realtime=RealtimeTokenService(
            api_key=settings.openai_api_key,
            url=settings.openai_realtime_url,
            timeout=settings.upstream_timeout_s,
            ledger=ledger,
            client=http_client,
        ),
    )
    logger.info(
        "services_ready",
        database_url=settings.database_url,
        sessions_dir=settings.sessions_dir,
        heartbeat_timeout_ms=settings.heartbeat_timeout_ms,
        realtime_configured=services.realtime.configured,
    )
    return services
