"""Tests for ipo_tracker.core.models."""

from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from ipo_tracker.core.models import (
    MUTABLE_FIELDS,
    CanonicalStockRecord,
    FilingAnalysis,
    IpoStatus,
    IpoStock,
    Market,
    MarketOutlook,
    StockAnalysis,
    SyncOutcome,
    SyncResult,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


class TestEnums:
    def test_market_values(self):
        assert [m.value for m in Market] == ["US", "HK"]

    def test_status_declaration_order(self):
        assert [s.value for s in IpoStatus] == [
            "UPCOMING", "PRICING", "LISTED", "WITHDRAWN", "POSTPONED",
        ]

    def test_str_enum_compares_to_string(self):
        assert IpoStatus.LISTED == "LISTED"
        assert MarketOutlook("Bullish") is MarketOutlook.BULLISH


class TestCanonicalStockRecord:
    def test_defaults(self):
        r = CanonicalStockRecord(symbol="ACME", company_name="Acme")
        assert r.market == Market.US
        assert r.status == IpoStatus.UPCOMING
        assert r.underwriters == []
        assert r.expected_price is None

    def test_frozen(self):
        r = CanonicalStockRecord(symbol="ACME", company_name="Acme")
        with pytest.raises(ValidationError):
            r.symbol = "OTHER"

    def test_mutable_values_allow_list(self, make_record):
        values = make_record().mutable_values()
        assert tuple(values) == MUTABLE_FIELDS
        assert "symbol" not in values
        assert "company_name" not in values
        assert "underwriters" not in values
        assert values["ipo_date"] == date(2025, 6, 20)

    def test_date_parsed_from_string(self):
        r = CanonicalStockRecord(symbol="A", company_name="A", ipo_date="2025-07-01")
        assert r.ipo_date == date(2025, 7, 1)


class TestIpoStock:
    def test_mutable_values_match_record(self, make_record):
        record = make_record()
        stock = IpoStock(
            id="abc",
            symbol=record.symbol,
            company_name=record.company_name,
            market=record.market,
            status=record.status,
            created_at=NOW,
            updated_at=NOW,
            **{k: v for k, v in record.mutable_values().items() if k != "status"},
        )
        assert stock.mutable_values() == record.mutable_values()


class TestSyncResult:
    def test_record_counts(self):
        result = SyncResult()
        result.record(SyncOutcome.ADDED)
        result.record(SyncOutcome.UPDATED)
        result.record(SyncOutcome.SKIPPED)
        result.record(SyncOutcome.SKIPPED)
        assert (result.added, result.updated, result.skipped) == (1, 1, 2)

    def test_defaults_unsuccessful(self):
        result = SyncResult()
        assert result.success is False
        assert result.errors == []

    def test_errors_not_shared(self):
        a, b = SyncResult(), SyncResult()
        a.errors.append("x")
        assert b.errors == []


class TestAnalysisModels:
    def test_stock_analysis_defaults(self):
        a = StockAnalysis(symbol="ACME", company_name="Acme", provider="fake", summary="ok")
        assert a.risk_level == "Medium"
        assert a.recommendation == "Watch"

    def test_scores_in_range(self):
        with pytest.raises(ValidationError, match="must be in"):
            FilingAnalysis(
                company_name="Acme",
                document_type="10-K filing",
                provider="fake",
                summary="ok",
                scores={"overallScore": 120.0},
            )

    def test_valid_scores(self):
        a = FilingAnalysis(
            company_name="Acme",
            document_type="IPO prospectus",
            provider="fake",
            summary="ok",
            scores={"overallScore": 0.0, "liquidityScore": 100.0},
        )
        assert a.scores["liquidityScore"] == 100.0
