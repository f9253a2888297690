"""IPO feed ingestion: adapters, transformer, reconciliation, and storage."""

from ipo_tracker.ingestion.finnhub import FinnhubClient
from ipo_tracker.ingestion.hkex import HkexFiniClient
from ipo_tracker.ingestion.rate_limit import SlidingWindowRateLimiter
from ipo_tracker.ingestion.store import IpoStockStore, SqliteStore, create_store
from ipo_tracker.ingestion.sync import (
    IpoDataSyncService,
    StockReconciler,
    create_sync_service,
)

__all__ = [
    "FinnhubClient",
    "HkexFiniClient",
    "SlidingWindowRateLimiter",
    "IpoStockStore",
    "SqliteStore",
    "create_store",
    "StockReconciler",
    "IpoDataSyncService",
    "create_sync_service",
]
