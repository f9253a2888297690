"""Custom exception hierarchy for ipo-tracker."""

from typing import Any


class IpoTrackerError(Exception):
    """Base exception for all ipo-tracker errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(IpoTrackerError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value (redacted for secrets)
    """


class SourceError(IpoTrackerError):
    """An upstream feed (Finnhub, HKEX, GitHub) could not be read.

    Policy: fails the whole sync for that source. Other sources continue.

    Context keys:
        source: str — "Finnhub", "HKEX", "SEC", or "GitHub"
        status_code: int | None — HTTP status code if applicable
        url: str — the URL that was being fetched
    """


class RateLimitError(SourceError):
    """Upstream answered HTTP 429.

    Context keys:
        retry_after: int | None — seconds to wait, if the server said
    """


class RecordError(IpoTrackerError):
    """A single candidate record is unusable (missing symbol or name).

    Policy: record the error against that record and continue the batch.

    Context keys:
        symbol: str | None
        market: str | None
    """


class StorageError(IpoTrackerError):
    """Database operation failed.

    Policy: raise immediately. Data integrity is critical.

    Context keys:
        operation: str — "insert", "query", "migrate", etc.
        table: str — the table involved
    """


class AnalysisError(IpoTrackerError):
    """AI analysis could not be produced.

    Context keys:
        kind: str — "stock", "market", "filing", or "prospectus"
    """


class LLMError(AnalysisError):
    """LLM provider returned an error or malformed response.

    Context keys:
        provider: str — "perplexity", "github", or "claude"
        status_code: int | None — HTTP status code if applicable
        response_body: str | None — truncated response for debugging
    """
