"""Pure functions mapping upstream feed entries onto CanonicalStockRecord."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from pydantic import ValidationError

from ipo_tracker.core.exceptions import RecordError
from ipo_tracker.core.models import CanonicalStockRecord, IpoStatus, Market
from ipo_tracker.ingestion.schemas import FinnhubIpoEntry, HkexListing

# "$10-$15", "10 - 15", "HK$10.00-HK$12.00", "$10–$15"
_RANGE_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*[-–~]\s*(?:[A-Z]{0,3}\$)?\s*(\d+(?:\.\d+)?)"
)
_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")

_FINNHUB_STATUS: dict[str, IpoStatus] = {
    "filed": IpoStatus.UPCOMING,
    "expected": IpoStatus.UPCOMING,
    "priced": IpoStatus.PRICING,
    "listed": IpoStatus.LISTED,
    "withdrawn": IpoStatus.WITHDRAWN,
    "postponed": IpoStatus.POSTPONED,
}

_HKEX_STATUS: dict[str, IpoStatus] = {
    "upcoming": IpoStatus.UPCOMING,
    "open": IpoStatus.UPCOMING,
    "subscription": IpoStatus.UPCOMING,
    "priced": IpoStatus.PRICING,
    "allotment": IpoStatus.PRICING,
    "listed": IpoStatus.LISTED,
    "withdrawn": IpoStatus.WITHDRAWN,
    "lapsed": IpoStatus.WITHDRAWN,
    "postponed": IpoStatus.POSTPONED,
}


def parse_price(text: str | None) -> float | None:
    """Extract a single price from free-form upstream text.

    A range yields its midpoint, a single number yields itself, and
    anything without a number yields None. Never raises.

    >>> parse_price("$10-$15")
    12.5
    >>> parse_price("TBD") is None
    True
    """
    if not text:
        return None
    cleaned = str(text).replace(",", "")

    m = _RANGE_RE.search(cleaned)
    if m:
        low, high = float(m.group(1)), float(m.group(2))
        return (low + high) / 2

    m = _NUMBER_RE.search(cleaned)
    if m:
        return float(m.group(1))
    return None


def parse_date(text: str | None) -> date | None:
    """Parse an ISO calendar date; malformed input yields None."""
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def infer_status(
    native: str | None,
    ipo_date: date | None,
    vocabulary: dict[str, IpoStatus],
    today: date | None = None,
) -> IpoStatus:
    """Map a native status to IpoStatus, promoting past-dated IPOs to LISTED.

    When the IPO date is strictly before today (calendar-date comparison),
    only an explicit withdrawal or postponement survives; everything else
    is treated as listed.
    """
    key = (native or "").strip().lower()
    mapped = vocabulary.get(key)
    today = today or date.today()

    if ipo_date is not None and ipo_date < today:
        if mapped in (IpoStatus.WITHDRAWN, IpoStatus.POSTPONED):
            return mapped
        return IpoStatus.LISTED

    return mapped or IpoStatus.UPCOMING


def map_finnhub_status(
    native: str | None,
    ipo_date: date | None,
    today: date | None = None,
) -> IpoStatus:
    """Finnhub status vocabulary: filed, expected, priced, listed, withdrawn, postponed."""
    return infer_status(native, ipo_date, _FINNHUB_STATUS, today)


def map_hkex_status(
    native: str | None,
    ipo_date: date | None,
    today: date | None = None,
) -> IpoStatus:
    return infer_status(native, ipo_date, _HKEX_STATUS, today)


def entry_symbol(raw: Any) -> str:
    """Best-effort identifier of a raw upstream entry, for error messages."""
    if isinstance(raw, dict):
        return str(raw.get("symbol") or raw.get("stockCode") or "unknown")
    return "unknown"


def parse_finnhub_entry(raw: dict[str, Any]) -> FinnhubIpoEntry:
    """Validate one raw Finnhub calendar row, raising RecordError on failure."""
    try:
        return FinnhubIpoEntry.model_validate(raw)
    except ValidationError as e:
        raise RecordError(
            f"Malformed Finnhub entry: {e.error_count()} validation error(s)",
            context={"source": "finnhub", "symbol": entry_symbol(raw)},
        ) from e


def parse_hkex_listing(raw: dict[str, Any]) -> HkexListing:
    """Validate one raw HKEX listing, raising RecordError on failure."""
    try:
        return HkexListing.model_validate(raw)
    except ValidationError as e:
        raise RecordError(
            f"Malformed HKEX listing: {e.error_count()} validation error(s)",
            context={"source": "hkex", "symbol": entry_symbol(raw)},
        ) from e


def is_meaningful_finnhub_entry(entry: FinnhubIpoEntry) -> bool:
    """Decide whether a Finnhub row is worth reconciling.

    Requires a symbol and a name, rejects withdrawn entries, and needs at
    least one of share count, price, or total offering value.
    """
    if not entry.symbol or not entry.name:
        return False
    if (entry.status or "").lower() == "withdrawn":
        return False
    return bool(entry.number_of_shares or entry.price or entry.total_shares_value)


def _require(symbol: str | None, company_name: str | None, source: str) -> tuple[str, str]:
    symbol = (symbol or "").strip().upper()
    company_name = (company_name or "").strip()
    if not symbol or not company_name:
        raise RecordError(
            "Record is missing symbol or company name",
            context={"source": source, "symbol": symbol or None},
        )
    return symbol, company_name


def finnhub_to_record(
    entry: FinnhubIpoEntry,
    today: date | None = None,
) -> CanonicalStockRecord:
    """Build a US CanonicalStockRecord from a Finnhub calendar row."""
    symbol, company_name = _require(entry.symbol, entry.name, "finnhub")
    ipo_date = parse_date(entry.date)

    return CanonicalStockRecord(
        symbol=symbol,
        company_name=company_name,
        market=Market.US,
        status=map_finnhub_status(entry.status, ipo_date, today),
        expected_price=parse_price(entry.price),
        price_range=entry.price,
        shares_offered=entry.number_of_shares,
        ipo_date=ipo_date,
        underwriters=[],
    )


def hkex_to_record(
    listing: HkexListing,
    today: date | None = None,
) -> CanonicalStockRecord:
    """Build an HK CanonicalStockRecord from an HKEX FINI listing."""
    symbol, company_name = _require(listing.symbol, listing.company_name, "hkex")
    ipo_date = parse_date(listing.listing_date)

    return CanonicalStockRecord(
        symbol=symbol,
        company_name=company_name,
        market=Market.HK,
        status=map_hkex_status(listing.status, ipo_date, today),
        expected_price=parse_price(listing.offer_price),
        price_range=listing.offer_price,
        shares_offered=listing.shares_offered,
        ipo_date=ipo_date,
        sector=listing.sector,
        industry=listing.industry,
        description=listing.description,
        website=listing.website,
        underwriters=listing.sponsors,
        market_cap=listing.market_cap,
    )
