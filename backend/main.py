"""
FastAPI backend for the dual-track recording studio.
Session lifecycle, audio chunk ingestion, transcripts and realtime tokens.
Deployment-ready: CORS, configurable host/port via env.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studio.core.config import Settings, get_settings
from studio.core.logging import configure_logging, get_logger
from studio.routers import audio, downloads, messages, realtime, sessions
from studio.routers.error_handlers import register_error_handlers
from studio.services.container import StudioServices, build_services

logger = get_logger("app")


def create_app(
    services: Optional[StudioServices] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the application.

    Args:
        services: Pre-built core components. When omitted they are built from
            ``settings`` on startup and closed on shutdown.
        settings: Defaults to ``get_settings()``.
    """
    configure_logging()
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = None
        if getattr(app.state, "services", None) is None:
            owned = build_services(settings)
            app.state.services = owned
        try:
            yield
        finally:
            if owned is not None:
                owned.close()
                app.state.services = None

    app = FastAPI(
        title="Recording Studio API",
        description="Session lifecycle, dual-track audio recording and ordered transcripts.",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(sessions.router)
    app.include_router(audio.router)
    app.include_router(messages.router)
    app.include_router(downloads.router)
    app.include_router(realtime.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("main:app", host=_settings.host, port=_settings.port)
