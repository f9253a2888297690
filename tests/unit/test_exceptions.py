"""Tests for ipo_tracker.core.exceptions."""

import pytest

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


class TestExceptionHierarchy:
    """Verify the exception class hierarchy."""

    def test_config_is_subclass(self):
        assert issubclass(ConfigError, IpoTrackerError)

    def test_source_is_subclass(self):
        assert issubclass(SourceError, IpoTrackerError)

    def test_rate_limit_is_subclass_of_source(self):
        assert issubclass(RateLimitError, SourceError)
        assert issubclass(RateLimitError, IpoTrackerError)

    def test_record_is_not_a_source_error(self):
        assert issubclass(RecordError, IpoTrackerError)
        assert not issubclass(RecordError, SourceError)

    def test_llm_is_subclass_of_analysis(self):
        assert issubclass(LLMError, AnalysisError)
        assert issubclass(LLMError, IpoTrackerError)

    def test_storage_is_subclass(self):
        assert issubclass(StorageError, IpoTrackerError)


class TestExceptionContext:
    """Verify context dict behavior."""

    def test_default_empty_context(self):
        e = IpoTrackerError("test")
        assert e.context == {}

    def test_custom_context(self):
        e = SourceError("fail", context={"source": "Finnhub", "status_code": 500})
        assert e.context["source"] == "Finnhub"
        assert e.context["status_code"] == 500

    def test_message_preserved(self):
        e = RecordError("missing symbol")
        assert str(e) == "missing symbol"

    def test_catch_by_base(self):
        with pytest.raises(IpoTrackerError):
            raise RateLimitError("slow down", context={"retry_after": 30})

    def test_catch_by_intermediate(self):
        with pytest.raises(SourceError) as exc_info:
            raise RateLimitError("slow down", context={"retry_after": 30})
        assert exc_info.value.context["retry_after"] == 30
