"""Shared fixtures for all tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure backend/ is on sys.path so tests can import `studio` and `main`
# when running pytest from the repository root without an editable install.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "backend"))

import pytest  # noqa: E402

from studio.core.config import Settings  # noqa: E402
from studio.services.container import StudioServices, build_services  # noqa: E402
from studio.services.notifications import ListenerNotifier  # noqa: E402

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'studio.db'}",
        sessions_dir=str(tmp_path / "sessions"),
        openai_api_key=None,
        heartbeat_timeout_ms=30_000,
        cors_origins="*",
    )


@pytest.fixture
def notifier() -> ListenerNotifier:
    # No executor: listeners run inline so assertions can follow publish directly
    return ListenerNotifier()


@pytest.fixture
def services(settings: Settings, clock: FakeClock, notifier: ListenerNotifier):
    built = build_services(settings, clock=clock, notifier=notifier)
    yield built
    built.close()


@pytest.fixture
def ledger(services: StudioServices):
    return services.ledger


@pytest.fixture
def audio_store(services: StudioServices):
    return services.audio


@pytest.fixture
def transcripts(services: StudioServices):
    return services.transcripts


@pytest.fixture
def planner(services: StudioServices):
    return services.planner


@pytest.fixture
def session_id(ledger) -> str:
    return ledger.create(title="Fixture session").session.id
