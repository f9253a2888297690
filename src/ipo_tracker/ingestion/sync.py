"""Reconciliation engine and per-source sync orchestration."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Awaitable, Callable

from ipo_tracker.core.config import TrackerConfig
from ipo_tracker.core.exceptions import RecordError
from ipo_tracker.core.models import (
    MUTABLE_FIELDS,
    CanonicalStockRecord,
    IpoStock,
    Market,
    MarketSyncInfo,
    SyncOutcome,
    SyncResult,
)
from ipo_tracker.ingestion.finnhub import FinnhubClient
from ipo_tracker.ingestion.hkex import HkexFiniClient
from ipo_tracker.ingestion.store import IpoStockStore
from ipo_tracker.ingestion.transform import (
    entry_symbol,
    finnhub_to_record,
    hkex_to_record,
    is_meaningful_finnhub_entry,
    parse_finnhub_entry,
    parse_hkex_listing,
)

logger = logging.getLogger(__name__)


def has_changes(existing: IpoStock, candidate: CanonicalStockRecord) -> bool:
    """True when any allow-listed field differs between store and candidate.

    Values compare by equality, so dates compare by calendar value and a
    missing value differs from any present one.
    """
    for name in MUTABLE_FIELDS:
        if getattr(existing, name) != getattr(candidate, name):
            return True
    return False


class StockReconciler:
    """Idempotent add/update/skip of candidate records keyed by (symbol, market)."""

    def __init__(self, store: IpoStockStore) -> None:
        self._store = store

    async def upsert(self, candidate: CanonicalStockRecord) -> SyncOutcome:
        """Merge one candidate into the store.

        Raises:
            RecordError: Candidate lacks a symbol or company name.
            StorageError: The store read or write failed.
        """
        if not candidate.symbol.strip() or not candidate.company_name.strip():
            raise RecordError(
                "Record is missing symbol or company name",
                context={"symbol": candidate.symbol or None},
            )

        existing = await self._store.find_stock(candidate.symbol, candidate.market)
        if existing is None:
            await self._store.create_stock(candidate)
            logger.debug("Added %s (%s)", candidate.symbol, candidate.market)
            return SyncOutcome.ADDED

        if has_changes(existing, candidate):
            await self._store.update_stock(existing.id, candidate)
            logger.debug("Updated %s (%s)", candidate.symbol, candidate.market)
            return SyncOutcome.UPDATED

        return SyncOutcome.SKIPPED


class IpoDataSyncService:
    """Pulls each upstream feed and reconciles it into the store.

    One run per source produces one SyncResult. A failing record is
    recorded and the batch continues; a failing fetch marks the source
    unsuccessful but never affects the other source.
    """

    def __init__(
        self,
        store: IpoStockStore,
        finnhub: FinnhubClient,
        hkex: HkexFiniClient,
        lookback_days: int = 30,
        lookahead_days: int = 30,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._reconciler = StockReconciler(store)
        self._finnhub = finnhub
        self._hkex = hkex
        self._lookback = timedelta(days=lookback_days)
        self._lookahead = timedelta(days=lookahead_days)
        self._today = today
        self._locks = {Market.US: asyncio.Lock(), Market.HK: asyncio.Lock()}

    @property
    def finnhub(self) -> FinnhubClient:
        """The US adapter, shared with market-data routes so they count against one limiter."""
        return self._finnhub

    async def close(self) -> None:
        await self._finnhub.close()
        await self._hkex.close()

    async def sync_us_ipos(self) -> SyncResult:
        """Sync the Finnhub IPO calendar around today into the US market."""
        async with self._locks[Market.US]:
            return await self._run(Market.US, self._fetch_us, self._process_us)

    async def sync_hk_ipos(self) -> SyncResult:
        """Sync HKEX FINI listings into the HK market."""
        async with self._locks[Market.HK]:
            return await self._run(Market.HK, self._fetch_hk, self._process_hk)

    async def sync_all_data(self) -> dict[Market, SyncResult]:
        """Run both sources concurrently; each result is independent."""
        outcomes = await asyncio.gather(
            self.sync_us_ipos(),
            self.sync_hk_ipos(),
            return_exceptions=True,
        )
        results: dict[Market, SyncResult] = {}
        for market, outcome in zip((Market.US, Market.HK), outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("%s sync crashed: %s", market, outcome)
                outcome = SyncResult(
                    success=False,
                    errors=[f"{market} IPO sync failed: {outcome}"],
                )
            results[market] = outcome
        return results

    async def get_last_sync_info(self) -> list[MarketSyncInfo]:
        """Per-market stock count and latest update time."""
        return await self._store.get_market_stats()

    # --- Internals ---

    async def _run(
        self,
        market: Market,
        fetch: Callable[[], Awaitable[list[dict[str, Any]]]],
        process: Callable[[dict[str, Any]], Awaitable[SyncOutcome | None]],
    ) -> SyncResult:
        result = SyncResult()
        logger.info("Starting %s IPO sync", market)

        try:
            entries = await fetch()
            for raw in entries:
                result.processed += 1
                try:
                    outcome = await process(raw)
                except Exception as e:
                    symbol = entry_symbol(raw)
                    message = f"Error processing {symbol}: {e}"
                    logger.warning(message)
                    result.errors.append(message)
                    continue
                result.record(outcome or SyncOutcome.SKIPPED)
            result.success = True
        except Exception as e:
            logger.error("%s IPO sync failed: %s", market, e)
            result.errors.append(f"{market} IPO sync failed: {e}")

        logger.info(
            "%s sync finished: processed=%d added=%d updated=%d skipped=%d errors=%d",
            market, result.processed, result.added, result.updated,
            result.skipped, len(result.errors),
        )
        return result

    async def _fetch_us(self) -> list[dict[str, Any]]:
        today = self._today()
        calendar = await self._finnhub.get_ipo_calendar(
            today - self._lookback, today + self._lookahead
        )
        return calendar.ipo_calendar

    async def _process_us(self, raw: dict[str, Any]) -> SyncOutcome | None:
        entry = parse_finnhub_entry(raw)
        if not is_meaningful_finnhub_entry(entry):
            return None
        record = finnhub_to_record(entry, today=self._today())
        return await self._reconciler.upsert(record)

    async def _fetch_hk(self) -> list[dict[str, Any]]:
        token = await self._hkex.get_access_token()
        listings = await self._hkex.get_ipo_listings(token)
        return listings.listings

    async def _process_hk(self, raw: dict[str, Any]) -> SyncOutcome:
        listing = parse_hkex_listing(raw)
        record = hkex_to_record(listing, today=self._today())
        return await self._reconciler.upsert(record)


def create_sync_service(config: TrackerConfig, store: IpoStockStore) -> IpoDataSyncService:
    """Wire adapters and limiters from configuration."""
    timeout = config.sync.request_timeout
    return IpoDataSyncService(
        store=store,
        finnhub=FinnhubClient(config.finnhub, timeout=timeout),
        hkex=HkexFiniClient(config.hkex, timeout=timeout),
        lookback_days=config.finnhub.lookback_days,
        lookahead_days=config.finnhub.lookahead_days,
    )
