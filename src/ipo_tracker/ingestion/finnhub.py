"""Finnhub adapter: US IPO calendar plus the market data shown beside it."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ipo_tracker.core.config import FinnhubConfig
from ipo_tracker.core.exceptions import SourceError
from ipo_tracker.ingestion.base import SourceClient
from ipo_tracker.ingestion.rate_limit import SlidingWindowRateLimiter
from ipo_tracker.ingestion.schemas import (
    BasicFinancials,
    FinnhubIpoCalendar,
    MarketHoliday,
    MarketHolidays,
    MarketNewsItem,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

NEWS_CATEGORIES = ("general", "forex", "crypto", "merger")
MAX_UPCOMING_HOLIDAYS = 10


class FinnhubClient(SourceClient):
    """Fetches Finnhub's IPO calendar, market news, holidays and metrics.

    Every request first passes through the adapter's sliding-window
    limiter, so one client instance should be shared per process.
    """

    source_name = "Finnhub"

    def __init__(
        self,
        config: FinnhubConfig,
        timeout: float = 45.0,
        client: httpx.AsyncClient | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        super().__init__(config.base_url, timeout, client)
        self._config = config
        self._limiter = limiter or SlidingWindowRateLimiter(
            config.rate_limit, config.rate_window_seconds
        )

    @property
    def limiter(self) -> SlidingWindowRateLimiter:
        return self._limiter

    async def get_ipo_calendar(self, from_date: date, to_date: date) -> FinnhubIpoCalendar:
        """GET /calendar/ipo for [from_date, to_date].

        Raises:
            SourceError: Missing API key, HTTP failure, or a response
                without an `ipoCalendar` list.
        """
        logger.info("Fetching Finnhub IPO calendar %s..%s", from_date, to_date)
        payload = await self._get(
            "/calendar/ipo",
            {"from": from_date.isoformat(), "to": to_date.isoformat()},
        )
        return self._validate(FinnhubIpoCalendar, payload, "calendar")

    async def get_market_news(
        self, category: str = "general", limit: int = 10
    ) -> list[MarketNewsItem]:
        """Latest market headlines, newest first as Finnhub returns them.

        Rows without a headline are dropped.
        """
        if category not in NEWS_CATEGORIES:
            raise SourceError(
                f"Unknown news category '{category}'",
                context={"source": self.source_name, "allowed": list(NEWS_CATEGORIES)},
            )
        payload = await self._get("/news", {"category": category})
        if not isinstance(payload, list):
            raise SourceError(
                "Malformed Finnhub news payload: expected a list",
                context={"source": self.source_name},
            )

        items: list[MarketNewsItem] = []
        for raw in payload:
            if len(items) >= limit:
                break
            try:
                items.append(MarketNewsItem.model_validate(raw))
            except ValidationError:
                logger.debug("Skipping malformed news item: %r", raw)
        return items

    async def get_market_holidays(
        self, exchange: str = "US", today: date | None = None
    ) -> list[MarketHoliday]:
        """Upcoming holidays for an exchange, soonest first, at most ten."""
        payload = await self._get("/stock/market-holiday", {"exchange": exchange})
        envelope = self._validate(MarketHolidays, payload, "market holiday")

        today = today or datetime.now(UTC).date()
        holidays: list[MarketHoliday] = []
        for raw in envelope.data:
            try:
                holiday = MarketHoliday.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed holiday: %r", raw)
                continue
            if holiday.at_date >= today:
                holidays.append(holiday)

        holidays.sort(key=lambda h: h.at_date)
        return holidays[:MAX_UPCOMING_HOLIDAYS]

    async def get_basic_financials(self, symbol: str, metric: str = "all") -> BasicFinancials:
        """GET /stock/metric for one listed symbol.

        Finnhub answers `{}` for symbols it does not cover; that is
        reported as SourceError.
        """
        symbol = symbol.strip().upper()
        payload = await self._get("/stock/metric", {"symbol": symbol, "metric": metric})
        if isinstance(payload, dict) and not payload:
            raise SourceError(
                f"Finnhub has no financials for {symbol}",
                context={"source": self.source_name, "symbol": symbol, "status_code": 404},
            )
        return self._validate(BasicFinancials, payload, "financials")

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        if not self._config.api_key:
            raise SourceError(
                "Finnhub API key is not configured",
                context={"source": self.source_name},
            )

        await self._limiter.wait_if_needed()
        return await self._request_json(
            "GET",
            path,
            params={**params, "token": self._config.api_key},
            redact=("token",),
        )

    def _validate(self, model: type[M], payload: Any, what: str) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise SourceError(
                f"Malformed Finnhub {what} payload: {e.error_count()} validation error(s)",
                context={"source": self.source_name},
            ) from e
