"""Shared pytest fixtures for ipo-tracker."""

from datetime import UTC, date, datetime

import pytest

from ipo_tracker.core.config import StorageConfig
from ipo_tracker.core.models import (
    CanonicalStockRecord,
    GitHubRepo,
    IpoStatus,
    Market,
    StorageBackend,
)
from ipo_tracker.ingestion.store import SqliteStore

TODAY = date(2025, 6, 15)
NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
async def store():
    """An initialized in-memory SqliteStore."""
    config = StorageConfig(backend=StorageBackend.SQLITE, sqlite_path=":memory:")
    s = SqliteStore(config)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def make_record():
    """Factory for CanonicalStockRecord with overridable defaults."""

    def _make(**overrides):
        defaults = dict(
            symbol="ACME",
            company_name="Acme Robotics Inc.",
            market=Market.US,
            status=IpoStatus.UPCOMING,
            expected_price=12.5,
            price_range="10-15",
            shares_offered=5_000_000.0,
            ipo_date=date(2025, 6, 20),
        )
        defaults.update(overrides)
        return CanonicalStockRecord(**defaults)

    return _make


@pytest.fixture
def make_repo():
    """Factory for GitHubRepo with overridable defaults."""

    def _make(**overrides):
        defaults = dict(
            name="agent-kit",
            name_with_owner="acme/agent-kit",
            owner="acme",
            url="https://github.com/acme/agent-kit",
            description="An AI agent framework for LLM apps",
            stars=250,
            forks=40,
            open_issues=3,
            updated_at=datetime(2025, 6, 10, tzinfo=UTC),
            created_at=datetime(2024, 3, 1, tzinfo=UTC),
            language="Python",
            license="MIT License",
            topics=["ai-agent", "llm"],
        )
        defaults.update(overrides)
        return GitHubRepo(**defaults)

    return _make


@pytest.fixture
def finnhub_entry():
    """Factory for one raw Finnhub calendar row."""

    def _make(**overrides):
        row = {
            "symbol": "ACME",
            "name": "Acme Robotics Inc.",
            "date": "2025-06-20",
            "exchange": "NASDAQ",
            "price": "10-15",
            "status": "expected",
            "numberOfShares": 5000000,
            "totalSharesValue": 62500000,
        }
        row.update(overrides)
        return row

    return _make


@pytest.fixture
def hkex_listing():
    """Factory for one raw HKEX FINI listing."""

    def _make(**overrides):
        row = {
            "stockCode": "2599",
            "companyName": "Harbour Biotech Ltd",
            "listingDate": "2025-06-25",
            "offerPrice": "HK$8.00-HK$9.00",
            "status": "subscription",
            "sharesOffered": "120,000,000",
            "sector": "Healthcare",
            "industry": "Biotechnology",
            "sponsors": ["CICC", "Morgan Stanley"],
            "marketCap": 4200000000,
        }
        row.update(overrides)
        return row

    return _make
