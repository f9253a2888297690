"""ipo_tracker.core — Foundation types, config, and exceptions."""

from ipo_tracker.core.config import (
    APIConfig,
    FinnhubConfig,
    GitHubConfig,
    HkexConfig,
    LLMConfig,
    StorageConfig,
    SyncConfig,
    TrackerConfig,
    load_config,
)
from ipo_tracker.core.exceptions import (
    AnalysisError,
    ConfigError,
    IpoTrackerError,
    LLMError,
    RateLimitError,
    RecordError,
    SourceError,
    StorageError,
)
from ipo_tracker.core.models import (
    MUTABLE_FIELDS,
    AIAgent,
    AIAgentCategory,
    CanonicalStockRecord,
    CatalogKind,
    CatalogSyncResult,
    FilingAnalysis,
    GitHubRepo,
    IpoStatus,
    IpoStock,
    LLMProvider,
    Market,
    MarketAnalysis,
    MarketOutlook,
    MarketSyncInfo,
    McpApp,
    McpCategory,
    PricingType,
    Recommendation,
    RiskLevel,
    StockAnalysis,
    StockId,
    StorageBackend,
    Symbol,
    SyncOutcome,
    SyncResult,
)

__all__ = [
    # Type aliases
    "Symbol",
    "StockId",
    # Enums
    "Market",
    "IpoStatus",
    "SyncOutcome",
    "StorageBackend",
    "LLMProvider",
    "RiskLevel",
    "Recommendation",
    "MarketOutlook",
    "CatalogKind",
    "AIAgentCategory",
    "McpCategory",
    "PricingType",
    # Stock models
    "MUTABLE_FIELDS",
    "CanonicalStockRecord",
    "IpoStock",
    "SyncResult",
    "MarketSyncInfo",
    # Analysis models
    "StockAnalysis",
    "MarketAnalysis",
    "FilingAnalysis",
    # Catalog models
    "GitHubRepo",
    "AIAgent",
    "McpApp",
    "CatalogSyncResult",
    # Config
    "TrackerConfig",
    "FinnhubConfig",
    "HkexConfig",
    "SyncConfig",
    "StorageConfig",
    "LLMConfig",
    "GitHubConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "IpoTrackerError",
    "ConfigError",
    "SourceError",
    "RateLimitError",
    "RecordError",
    "StorageError",
    "AnalysisError",
    "LLMError",
]
