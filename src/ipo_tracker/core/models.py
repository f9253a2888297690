"""Pydantic data models — the system's type contracts."""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Type Aliases ---

Symbol = str
StockId = str

# --- Enumerations ---


class Market(StrEnum):
    """Origin market of an IPO record."""

    US = "US"
    HK = "HK"


class IpoStatus(StrEnum):
    """Lifecycle status of an IPO."""

    UPCOMING = "UPCOMING"
    PRICING = "PRICING"
    LISTED = "LISTED"
    WITHDRAWN = "WITHDRAWN"
    POSTPONED = "POSTPONED"


class SyncOutcome(StrEnum):
    """Reconciliation decision for one candidate record."""

    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


class StorageBackend(StrEnum):
    """Supported storage backends."""

    SQLITE = "sqlite"


class LLMProvider(StrEnum):
    """Supported LLM providers for IPO analysis."""

    PERPLEXITY = "perplexity"
    GITHUB = "github"
    CLAUDE = "claude"


class RiskLevel(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Recommendation(StrEnum):
    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"
    WATCH = "Watch"


class MarketOutlook(StrEnum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class CatalogKind(StrEnum):
    """Repository catalogs synced from GitHub."""

    AI_AGENTS = "ai-agents"
    MCP = "mcp"


class AIAgentCategory(StrEnum):
    CODING = "CODING"
    CONTENT = "CONTENT"
    CREATIVE = "CREATIVE"
    RESEARCH = "RESEARCH"
    CUSTOMER_SERVICE = "CUSTOMER_SERVICE"
    AUTOMATION = "AUTOMATION"
    ANALYTICS = "ANALYTICS"
    COMMUNICATION = "COMMUNICATION"
    EDUCATION = "EDUCATION"
    FINANCE = "FINANCE"
    HEALTHCARE = "HEALTHCARE"
    ENTERTAINMENT = "ENTERTAINMENT"
    MARKETING = "MARKETING"
    PRODUCTIVITY = "PRODUCTIVITY"
    OTHER = "OTHER"


class McpCategory(StrEnum):
    DEVELOPMENT = "DEVELOPMENT"
    CLOUD_SERVICES = "CLOUD_SERVICES"
    DATABASE = "DATABASE"
    AI_ML = "AI_ML"
    WEB_SCRAPING = "WEB_SCRAPING"
    AUTOMATION = "AUTOMATION"
    SECURITY = "SECURITY"
    COMMUNICATION = "COMMUNICATION"
    FINANCE = "FINANCE"
    TESTING = "TESTING"
    DATA_ANALYSIS = "DATA_ANALYSIS"
    PRODUCTIVITY = "PRODUCTIVITY"
    CREATIVE = "CREATIVE"
    ENTERPRISE = "ENTERPRISE"
    OTHER = "OTHER"


class PricingType(StrEnum):
    FREE = "FREE"
    FREEMIUM = "FREEMIUM"
    PAID = "PAID"


# Fields compared during reconciliation and overwritten on update.
MUTABLE_FIELDS: tuple[str, ...] = (
    "expected_price",
    "price_range",
    "shares_offered",
    "ipo_date",
    "status",
    "sector",
    "industry",
    "description",
    "market_cap",
    "revenue",
    "net_income",
    "employees",
    "website",
)


# --- Stock Models ---


class CanonicalStockRecord(BaseModel):
    """A normalized IPO record produced by a source transformer.

    Built fresh on every sync run and never persisted itself; its fields
    are merged into the durable IpoStock keyed by (symbol, market).
    """

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    company_name: str
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

    def mutable_values(self) -> dict[str, Any]:
        """Return the allow-listed mutable fields as a dict."""
        return {name: getattr(self, name) for name in MUTABLE_FIELDS}


class IpoStock(BaseModel):
    """The durable stock entity as persisted in the store."""

    model_config = ConfigDict(frozen=True)

    id: StockId
    symbol: Symbol
    company_name: str
    market: Market
    status: IpoStatus
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
    created_at: datetime
    updated_at: datetime

    def mutable_values(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in MUTABLE_FIELDS}


# --- Sync Models ---


class SyncResult(BaseModel):
    """Outcome of syncing one upstream source.

    A record whose processing raised counts toward `processed` and adds one
    entry to `errors`, but not toward added/updated/skipped.
    """

    success: bool = False
    processed: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    def record(self, outcome: SyncOutcome) -> None:
        """Count one reconciliation outcome."""
        if outcome == SyncOutcome.ADDED:
            self.added += 1
        elif outcome == SyncOutcome.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1


class MarketSyncInfo(BaseModel):
    """Per-market summary: stock count and last update time."""

    model_config = ConfigDict(frozen=True)

    market: Market
    count: int
    last_update: datetime | None = None


# --- Analysis Models ---


class StockAnalysis(BaseModel):
    """LLM investment analysis of a single IPO."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    company_name: str
    provider: str
    summary: str
    pros: list[str] = []
    cons: list[str] = []
    risk_level: RiskLevel = RiskLevel.MEDIUM
    recommendation: Recommendation = Recommendation.WATCH
    price_target: float | None = None
    key_metrics: dict[str, str] = {}


class MarketAnalysis(BaseModel):
    """LLM overview of the current IPO market."""

    model_config = ConfigDict(frozen=True)

    provider: str
    market_overview: str
    trends: list[str] = []
    opportunities: list[str] = []
    risks: list[str] = []
    outlook: MarketOutlook = MarketOutlook.NEUTRAL


class FilingAnalysis(BaseModel):
    """LLM analysis of an SEC filing or an IPO prospectus."""

    model_config = ConfigDict(frozen=True)

    ticker: Symbol | None = None
    company_name: str
    document_type: str
    provider: str
    summary: str
    key_findings: list[str] = []
    strengths: list[str] = []
    weaknesses: list[str] = []
    risks: list[str] = []
    opportunities: list[str] = []
    financial_metrics: dict[str, float] = {}
    scores: dict[str, float] = {}
    recommendation: Recommendation = Recommendation.WATCH
    confidence_score: float | None = None
    target_price: float | None = None

    @field_validator("scores")
    @classmethod
    def scores_in_range(cls, v: dict[str, float]) -> dict[str, float]:
        for name, score in v.items():
            if not 0.0 <= score <= 100.0:
                raise ValueError(f"score {name!r} must be in [0, 100], got {score}")
        return v


# --- Repository Catalog Models ---


class GitHubRepo(BaseModel):
    """A repository node from the GitHub GraphQL search API."""

    model_config = ConfigDict(frozen=True)

    name: str
    name_with_owner: str
    owner: str
    url: str
    description: str | None = None
    homepage_url: str | None = None
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    updated_at: datetime
    created_at: datetime
    language: str | None = None
    license: str | None = None
    topics: list[str] = []


class AIAgent(BaseModel):
    """A cataloged AI-agent project. Identity is "{creator}/{name}"."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    creator: str
    description: str | None = None
    category: AIAgentCategory
    website: str | None = None
    users: int = 0
    rating: float = 1.0
    featured: bool = False
    capabilities: list[str] = []
    tags: list[str] = []
    verified: bool = False
    pricing: PricingType = PricingType.FREE
    popularity_score: float = 0.0
    last_updated: datetime
    synced_at: datetime


class McpApp(BaseModel):
    """A cataloged Model Context Protocol server/client. Identity is github_url."""

    model_config = ConfigDict(frozen=True)

    github_url: str
    name: str
    full_name: str
    author: str
    description: str | None = None
    category: McpCategory
    homepage: str | None = None
    stars: int = 0
    forks: int = 0
    issues: int = 0
    language: str | None = None
    license: str | None = None
    topics: list[str] = []
    is_official: bool = False
    popularity_score: float = 0.0
    last_updated: datetime
    created_at: datetime
    synced_at: datetime


class CatalogSyncResult(BaseModel):
    """Outcome of a catalog sync across all search queries."""

    total_synced: int = 0
    queries: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
