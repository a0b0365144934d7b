"""
Database, storage and upstream configuration.
All values are overridable via env; the default deployment is a single SQLite file
next to a directory of per-session audio tracks.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Prefer backend/.env so scripts work regardless of CWD (run from backend/ or repo root)
_BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = _BACKEND_DIR / ".env"

MIN_HEARTBEAT_TIMEOUT_MS = 1_000
MAX_HEARTBEAT_TIMEOUT_MS = 300_000


def _ensure_sqlite_dir(url: str) -> str:
    """Create the parent directory of a file-backed SQLite URL if it is missing."""
    prefix = "sqlite:///"
    if not url.startswith(prefix) or url.endswith(":memory:"):
        return url
    db_path = Path(url[len(prefix):])
    if db_path.parent and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)
    return url


class Settings(BaseSettings):
    """Application settings; override via env or .env for deployment."""

    # Database (one file; set DATABASE_URL to move it)
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///studio.db")

    # Root directory for <sessions_dir>/<session_id>/<speaker>.wav
    sessions_dir: str = "sessions"

    # Staleness window used by the timeout sweep when the caller gives none
    heartbeat_timeout_ms: int = Field(
        default=30_000, ge=MIN_HEARTBEAT_TIMEOUT_MS, le=MAX_HEARTBEAT_TIMEOUT_MS
    )

    # Realtime provider (token minting only)
    openai_api_key: Optional[str] = None
    openai_realtime_url: str = "https://api.openai.com/v1/realtime/sessions"
    upstream_timeout_s: float = Field(default=10.0, gt=0)

    # Fire-and-forget pool for session:completed listeners
    notification_workers: int = Field(default=2, ge=1, le=16)

    # Server (for deployment: bind to 0.0.0.0, set PORT via env)
    host: str = "0.0.0.0"
    port: int = 4201

    # CORS: comma-separated origins, or "*" for allow-all (e.g. "https://studio.example.com")
    cors_origins: str = "*"

    model_config = {
        "env_file": str(_ENV_PATH) if _ENV_PATH.exists() else ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.database_url = _ensure_sqlite_dir(self.database_url)

    @field_validator("openai_api_key")
    @classmethod
    def _blank_key_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    def cors_origins_list(self) -> list[str]:
        if not self.cors_origins or self.cors_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
