"""Integration test fixtures: real SQLite files, mocked HTTP."""

from __future__ import annotations

from pathlib import Path

import pytest

from ipo_tracker.core.config import (
    APIConfig,
    FinnhubConfig,
    GitHubConfig,
    HkexConfig,
    StorageConfig,
    TrackerConfig,
)
from ipo_tracker.core.models import StorageBackend
from ipo_tracker.ingestion.store import SqliteStore


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "integration.db")


@pytest.fixture
def integration_config(db_path: str) -> TrackerConfig:
    """Fully credentialed config pointing at a file-backed database."""
    return TrackerConfig(
        finnhub=FinnhubConfig(api_key="fh-integration"),
        hkex=HkexConfig(client_id="hk-client", client_secret="hk-secret"),
        github=GitHubConfig(token="ghp_integration", requests_per_second=1000),
        storage=StorageConfig(backend=StorageBackend.SQLITE, sqlite_path=db_path),
        api=APIConfig(cron_secret="cron-integration"),
    )


@pytest.fixture
async def integration_store(integration_config: TrackerConfig) -> SqliteStore:
    """An initialized SqliteStore for integration tests."""
    store = SqliteStore(integration_config.storage)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def finnhub_calendar(finnhub_entry) -> list[dict]:
    return [
        finnhub_entry(),
        finnhub_entry(symbol="BOLT", name="Bolt Energy Corp", date="2025-07-02", status="filed"),
        finnhub_entry(symbol="OLDCO", name="Old Co", date="2025-05-20", status="priced"),
        finnhub_entry(symbol="NOPE", name="Nope Inc", status="withdrawn"),
    ]


@pytest.fixture
def hkex_listings(hkex_listing) -> list[dict]:
    return [
        hkex_listing(),
        hkex_listing(stockCode="9988", companyName="Lantern Tech", status="listed"),
    ]
