"""Tests for ipo_tracker.ingestion.transform."""

from __future__ import annotations

from datetime import date

import pytest

from ipo_tracker.core.exceptions import RecordError
from ipo_tracker.core.models import IpoStatus, Market
from ipo_tracker.ingestion.schemas import FinnhubIpoEntry, HkexListing
from ipo_tracker.ingestion.transform import (
    finnhub_to_record,
    hkex_to_record,
    infer_status,
    is_meaningful_finnhub_entry,
    map_finnhub_status,
    map_hkex_status,
    parse_date,
    parse_finnhub_entry,
    parse_hkex_listing,
    parse_price,
)

TODAY = date(2025, 6, 15)


@pytest.mark.unit
class TestParsePrice:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("$10-$15", 12.5),
            ("10 - 15", 12.5),
            ("$10.50-$12.50", 11.5),
            ("HK$8.00-HK$9.00", 8.5),
            ("$10–$15", 12.5),
            ("17.00", 17.0),
            ("$1,000", 1000.0),
            ("about 22 per share", 22.0),
        ],
    )
    def test_parses(self, text, expected):
        assert parse_price(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", [None, "", "TBD", "N/A", "-"])
    def test_no_number_is_none(self, text):
        assert parse_price(text) is None


@pytest.mark.unit
class TestParseDate:
    def test_iso(self):
        assert parse_date("2025-06-20") == date(2025, 6, 20)

    def test_datetime_prefix(self):
        assert parse_date("2025-06-20T00:00:00Z") == date(2025, 6, 20)

    @pytest.mark.parametrize("text", [None, "", "soon", "2025-13-40"])
    def test_malformed_is_none(self, text):
        assert parse_date(text) is None


@pytest.mark.unit
class TestStatusMapping:
    @pytest.mark.parametrize(
        "native, expected",
        [
            ("filed", IpoStatus.UPCOMING),
            ("expected", IpoStatus.UPCOMING),
            ("priced", IpoStatus.PRICING),
            ("Priced", IpoStatus.PRICING),
            ("listed", IpoStatus.LISTED),
            ("withdrawn", IpoStatus.WITHDRAWN),
            ("postponed", IpoStatus.POSTPONED),
            ("mystery", IpoStatus.UPCOMING),
            (None, IpoStatus.UPCOMING),
        ],
    )
    def test_finnhub_future_date(self, native, expected):
        assert map_finnhub_status(native, date(2025, 7, 1), TODAY) == expected

    def test_past_date_promotes_to_listed(self):
        assert map_finnhub_status("expected", date(2025, 6, 14), TODAY) == IpoStatus.LISTED
        assert map_finnhub_status("priced", date(2025, 1, 1), TODAY) == IpoStatus.LISTED

    def test_past_date_keeps_withdrawn_and_postponed(self):
        past = date(2025, 6, 1)
        assert map_finnhub_status("withdrawn", past, TODAY) == IpoStatus.WITHDRAWN
        assert map_finnhub_status("postponed", past, TODAY) == IpoStatus.POSTPONED

    def test_today_is_not_past(self):
        assert map_finnhub_status("expected", TODAY, TODAY) == IpoStatus.UPCOMING

    def test_missing_date_uses_native(self):
        assert map_finnhub_status("priced", None, TODAY) == IpoStatus.PRICING

    @pytest.mark.parametrize(
        "native, expected",
        [
            ("subscription", IpoStatus.UPCOMING),
            ("open", IpoStatus.UPCOMING),
            ("allotment", IpoStatus.PRICING),
            ("lapsed", IpoStatus.WITHDRAWN),
            ("postponed", IpoStatus.POSTPONED),
        ],
    )
    def test_hkex_vocabulary(self, native, expected):
        assert map_hkex_status(native, date(2025, 7, 1), TODAY) == expected

    def test_custom_vocabulary(self):
        vocab = {"live": IpoStatus.LISTED}
        assert infer_status("LIVE", None, vocab, TODAY) == IpoStatus.LISTED


@pytest.mark.unit
class TestMeaningfulEntry:
    def test_full_entry_is_meaningful(self, finnhub_entry):
        assert is_meaningful_finnhub_entry(parse_finnhub_entry(finnhub_entry()))

    def test_missing_symbol(self, finnhub_entry):
        assert not is_meaningful_finnhub_entry(parse_finnhub_entry(finnhub_entry(symbol="")))

    def test_missing_name(self, finnhub_entry):
        assert not is_meaningful_finnhub_entry(parse_finnhub_entry(finnhub_entry(name=None)))

    def test_withdrawn_rejected(self, finnhub_entry):
        entry = parse_finnhub_entry(finnhub_entry(status="Withdrawn"))
        assert not is_meaningful_finnhub_entry(entry)

    def test_needs_some_offering_detail(self, finnhub_entry):
        bare = finnhub_entry(numberOfShares=None, price=None, totalSharesValue=None)
        assert not is_meaningful_finnhub_entry(parse_finnhub_entry(bare))

    def test_any_single_detail_suffices(self, finnhub_entry):
        only_value = finnhub_entry(numberOfShares=None, price=None)
        assert is_meaningful_finnhub_entry(parse_finnhub_entry(only_value))


@pytest.mark.unit
class TestParseEntries:
    def test_lenient_numbers(self, finnhub_entry):
        entry = parse_finnhub_entry(finnhub_entry(numberOfShares="1,250,000"))
        assert entry.number_of_shares == 1_250_000.0

    def test_garbage_number_becomes_none(self, finnhub_entry):
        entry = parse_finnhub_entry(finnhub_entry(numberOfShares="lots"))
        assert entry.number_of_shares is None

    def test_non_string_text_coerced(self, finnhub_entry):
        entry = parse_finnhub_entry(finnhub_entry(price=17))
        assert entry.price == "17"

    def test_hkex_non_object_raises_record_error(self):
        with pytest.raises(RecordError, match="Malformed HKEX listing"):
            parse_hkex_listing(["2599", "Harbour Biotech"])

    def test_finnhub_non_object_raises_record_error(self):
        with pytest.raises(RecordError, match="Malformed Finnhub entry") as exc_info:
            parse_finnhub_entry("ACME")
        assert exc_info.value.context["symbol"] == "unknown"

    def test_hkex_sponsors_not_a_list(self, hkex_listing):
        listing = parse_hkex_listing(hkex_listing(sponsors="CICC"))
        assert listing.sponsors == []


@pytest.mark.unit
class TestFinnhubToRecord:
    def test_maps_fields(self, finnhub_entry):
        record = finnhub_to_record(FinnhubIpoEntry.model_validate(finnhub_entry()), TODAY)
        assert record.symbol == "ACME"
        assert record.company_name == "Acme Robotics Inc."
        assert record.market == Market.US
        assert record.status == IpoStatus.UPCOMING
        assert record.expected_price == 12.5
        assert record.price_range == "10-15"
        assert record.shares_offered == 5_000_000.0
        assert record.ipo_date == date(2025, 6, 20)
        assert record.underwriters == []

    def test_offering_value_is_not_market_cap(self, finnhub_entry):
        record = finnhub_to_record(FinnhubIpoEntry.model_validate(finnhub_entry()), TODAY)
        assert record.market_cap is None

    def test_symbol_normalized(self, finnhub_entry):
        entry = FinnhubIpoEntry.model_validate(finnhub_entry(symbol="  acme "))
        assert finnhub_to_record(entry, TODAY).symbol == "ACME"

    def test_missing_symbol_raises(self, finnhub_entry):
        entry = FinnhubIpoEntry.model_validate(finnhub_entry(symbol=None))
        with pytest.raises(RecordError, match="missing symbol"):
            finnhub_to_record(entry, TODAY)

    def test_past_date_listed(self, finnhub_entry):
        entry = FinnhubIpoEntry.model_validate(finnhub_entry(date="2025-05-01"))
        assert finnhub_to_record(entry, TODAY).status == IpoStatus.LISTED

    def test_unparseable_price_kept_as_text(self, finnhub_entry):
        entry = FinnhubIpoEntry.model_validate(finnhub_entry(price="TBD"))
        record = finnhub_to_record(entry, TODAY)
        assert record.expected_price is None
        assert record.price_range == "TBD"


@pytest.mark.unit
class TestHkexToRecord:
    def test_maps_fields(self, hkex_listing):
        record = hkex_to_record(HkexListing.model_validate(hkex_listing()), TODAY)
        assert record.symbol == "2599"
        assert record.market == Market.HK
        assert record.status == IpoStatus.UPCOMING
        assert record.expected_price == pytest.approx(8.5)
        assert record.price_range == "HK$8.00-HK$9.00"
        assert record.shares_offered == 120_000_000.0
        assert record.sector == "Healthcare"
        assert record.industry == "Biotechnology"
        assert record.underwriters == ["CICC", "Morgan Stanley"]
        assert record.market_cap == 4_200_000_000.0

    def test_missing_name_raises(self, hkex_listing):
        listing = HkexListing.model_validate(hkex_listing(companyName="  "))
        with pytest.raises(RecordError):
            hkex_to_record(listing, TODAY)
