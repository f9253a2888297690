"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ipo_tracker.core.models import IpoStatus, LLMProvider, Market


# -- Envelope --


class Envelope(BaseModel):
    """Standard success envelope."""

    success: bool = True
    data: Any = None
    message: str | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    success: bool = False
    error: str
    details: Any = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        pages = -(-total // limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )


# -- Health --


class HealthResponse(BaseModel):
    status: str
    version: str
    storage_backend: str
    database: bool
    total_stocks: int


# -- Stocks --


class StockCreateRequest(BaseModel):
    """Manual stock creation."""

    symbol: str = Field(min_length=1)
    company_name: str = Field(min_length=1)
    market: Market = Market.US
    status: IpoStatus = IpoStatus.UPCOMING
    expected_price: float | None = None
    price_range: str | None = None
    shares_offered: float | None = None
    ipo_date: date | None = None
    sector: str | None = None
    industry: str | None = None
    description: str | None = None
    website: str | None = None
    underwriters: list[str] = []
    market_cap: float | None = None
    revenue: float | None = None
    net_income: float | None = None
    employees: int | None = None

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be blank")
        return v

    @field_validator("company_name")
    @classmethod
    def strip_company_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("company_name must not be blank")
        return v


class StockUpdateRequest(BaseModel):
    """Partial manual edit. Only fields present in the body are written."""

    company_name: str | None = None
    status: IpoStatus | None = None
    expected_price: float | None = None
    price_range: str | None = None
    shares_offered: float | None = None
    ipo_date: date | None = None
    sector: str | None = None
    industry: str | None = None
    description: str | None = None
    website: str | None = None
    underwriters: list[str] | None = None
    market_cap: float | None = None
    revenue: float | None = None
    net_income: float | None = None
    employees: int | None = None

    @field_validator("company_name", "status")
    @classmethod
    def not_cleared(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("field cannot be cleared")
        return v.strip() if isinstance(v, str) and not isinstance(v, IpoStatus) else v


# -- Analysis --


class StockAnalysisRequest(BaseModel):
    symbol: str = Field(min_length=1)
    provider: LLMProvider | None = None


class MarketAnalysisRequest(BaseModel):
    market: Market | None = None
    provider: LLMProvider | None = None


class FilingAnalysisRequest(BaseModel):
    ticker: str | None = None
    company_name: str = Field(min_length=1)
    form_type: str = "10-K"
    content: str = Field(min_length=1)
    provider: LLMProvider | None = None


class ProspectusAnalysisRequest(BaseModel):
    company_name: str = Field(min_length=1)
    text: str = Field(min_length=1)
    provider: LLMProvider | None = None
