"""Boundary schemas for upstream IPO feed payloads.

Top-level envelopes are validated strictly so a malformed response fails
the source fast. Individual entries are parsed leniently, one at a time,
so a single bad entry only fails that record.
"""

from __future__ import annotations

from datetime import UTC, date as date_type, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _lenient_number(v: Any) -> float | None:
    """Coerce upstream numeric fields; anything unparseable becomes None."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        cleaned = v.replace(",", "").strip()
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def _lenient_text(v: Any) -> str | None:
    if v is None:
        return None
    text = str(v).strip()
    return text or None


# --- Finnhub ---


class FinnhubIpoEntry(BaseModel):
    """One row of Finnhub's /calendar/ipo response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: str | None = None
    name: str | None = None
    date: str | None = None
    exchange: str | None = None
    price: str | None = None
    status: str | None = None
    number_of_shares: float | None = Field(default=None, alias="numberOfShares")
    total_shares_value: float | None = Field(default=None, alias="totalSharesValue")

    @field_validator("symbol", "name", "date", "exchange", "price", "status", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _lenient_text(v)

    @field_validator("number_of_shares", "total_shares_value", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float | None:
        return _lenient_number(v)


class FinnhubIpoCalendar(BaseModel):
    """Envelope of Finnhub's /calendar/ipo response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    ipo_calendar: list[dict[str, Any]] = Field(alias="ipoCalendar")


# --- HKEX FINI ---


class HkexToken(BaseModel):
    """OAuth client-credentials token response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600


class HkexListing(BaseModel):
    """One IPO listing from the HKEX FINI listings endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: str | None = Field(default=None, alias="stockCode")
    company_name: str | None = Field(default=None, alias="companyName")
    listing_date: str | None = Field(default=None, alias="listingDate")
    offer_price: str | None = Field(default=None, alias="offerPrice")
    status: str | None = None
    shares_offered: float | None = Field(default=None, alias="sharesOffered")
    sector: str | None = None
    industry: str | None = None
    description: str | None = None
    website: str | None = None
    sponsors: list[str] = []
    market_cap: float | None = Field(default=None, alias="marketCap")

    @field_validator(
        "symbol", "company_name", "listing_date", "offer_price", "status",
        "sector", "industry", "description", "website",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _lenient_text(v)

    @field_validator("shares_offered", "market_cap", mode="before")
    @classmethod
    def _number(cls, v: Any) -> float | None:
        return _lenient_number(v)

    @field_validator("sponsors", mode="before")
    @classmethod
    def _sponsors(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(s).strip() for s in v if s is not None and str(s).strip()]


class HkexListings(BaseModel):
    """Envelope of the HKEX FINI listings response."""

    model_config = ConfigDict(extra="ignore")

    listings: list[dict[str, Any]]


# --- Finnhub market data ---


class MarketNewsItem(BaseModel):
    """One article from Finnhub's /news feed."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    category: str | None = None
    headline: str
    summary: str | None = None
    source: str | None = None
    url: str | None = None
    image: str | None = None
    related: str | None = None
    published_at: datetime | None = Field(default=None, alias="datetime")

    @field_validator("headline", mode="before")
    @classmethod
    def _headline(cls, v: Any) -> str:
        text = _lenient_text(v)
        if text is None:
            raise ValueError("headline is required")
        return text

    @field_validator("category", "summary", "source", "url", "image", "related", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _lenient_text(v)

    @field_validator("published_at", mode="before")
    @classmethod
    def _epoch_seconds(cls, v: Any) -> datetime | None:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v <= 0:
            return None
        return datetime.fromtimestamp(v, tz=UTC)


class MarketHoliday(BaseModel):
    """One exchange holiday from Finnhub's /stock/market-holiday."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    event_name: str = Field(alias="eventName")
    at_date: date_type = Field(alias="atDate")
    trading_hour: str | None = Field(default=None, alias="tradingHour")

    @field_validator("trading_hour", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _lenient_text(v)


class MarketHolidays(BaseModel):
    """Envelope of Finnhub's /stock/market-holiday response."""

    model_config = ConfigDict(extra="ignore")

    exchange: str
    timezone: str | None = None
    data: list[dict[str, Any]]


class BasicFinancials(BaseModel):
    """Finnhub's /stock/metric response: headline ratios plus time series."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: str
    metric_type: str | None = Field(default=None, alias="metricType")
    metric: dict[str, Any] = {}
    series: dict[str, Any] = {}

    @field_validator("metric", "series", mode="before")
    @classmethod
    def _mapping(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}


# --- sec-api.io ---


class SecFiling(BaseModel):
    """One filing from the sec-api.io query API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    accession_no: str = Field(alias="accessionNo")
    cik: str | None = None
    ticker: str | None = None
    company_name: str = Field(alias="companyName")
    form_type: str = Field(alias="formType")
    filed_at: datetime | None = Field(default=None, alias="filedAt")
    period_of_report: str | None = Field(default=None, alias="periodOfReport")
    description: str | None = None
    link_to_html: str | None = Field(default=None, alias="linkToHtml")
    link_to_txt: str | None = Field(default=None, alias="linkToTxt")
    link_to_filing_details: str | None = Field(default=None, alias="linkToFilingDetails")

    @field_validator(
        "cik", "ticker", "period_of_report", "description",
        "link_to_html", "link_to_txt", "link_to_filing_details",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> str | None:
        return _lenient_text(v)

    @property
    def document_url(self) -> str | None:
        """Primary document first, index page as a fallback."""
        return self.link_to_filing_details or self.link_to_html


class SecFilingSearch(BaseModel):
    """Envelope of a sec-api.io query response."""

    model_config = ConfigDict(extra="ignore")

    total: int = 0
    filings: list[dict[str, Any]]

    @field_validator("total", mode="before")
    @classmethod
    def _total(cls, v: Any) -> int:
        if isinstance(v, dict):
            v = v.get("value")
        n = _lenient_number(v)
        return int(n) if n is not None else 0
