"""Tests for the LLM-backed IPO analyst."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from ipo_tracker.analyzers import llm as llm_module
from ipo_tracker.analyzers.llm import (
    DEFAULT_SCORE,
    ClaudeProvider,
    GitHubModelsProvider,
    IpoAnalyst,
    LLMProviderBackend,
    PerplexityProvider,
    create_analyst,
    create_provider,
    extract_json,
)
from ipo_tracker.core.config import LLMConfig
from ipo_tracker.core.exceptions import AnalysisError, ConfigError, LLMError
from ipo_tracker.core.models import (
    IpoStatus,
    LLMProvider,
    MarketOutlook,
    Recommendation,
    RiskLevel,
)

STOCK_JSON = json.dumps({
    "summary": "Acme builds warehouse robots with strong early revenue.",
    "pros": ["Growing market", "Experienced team"],
    "cons": ["Unprofitable"],
    "riskLevel": "high",
    "recommendation": "Buy",
    "priceTarget": "18.50",
    "keyMetrics": {"marketCap": "$1.2B", "expectedGrowth": "35%"},
})

MARKET_JSON = json.dumps({
    "marketOverview": "IPO activity is recovering.",
    "trends": ["AI listings"],
    "opportunities": ["Robotics"],
    "risks": ["Rates"],
    "outlook": "Bullish",
})

FILING_JSON = json.dumps({
    "summary": "Solid balance sheet.",
    "keyFindings": ["Revenue up 20%"],
    "strengths": ["Cash rich"],
    "weaknesses": [],
    "risks": ["Customer concentration"],
    "opportunities": [],
    "financialMetrics": {"revenue": 1200000, "netIncome": "-50,000", "totalDebt": None},
    "scores": {"overallScore": 150, "profitabilityScore": -5, "liquidityScore": "70"},
    "recommendation": "Hold",
    "confidenceScore": 85,
    "targetPrice": None,
})


class FakeProvider:
    """Returns queued replies; an Exception in the queue is raised instead."""

    def __init__(self, *replies, name: str = "fake") -> None:
        self._replies = list(replies)
        self._name = name
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def query(self, prompt: str, max_tokens: int = 1000) -> str:
        self.prompts.append(prompt)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def no_sleep(monkeypatch) -> AsyncMock:
    sleep = AsyncMock()
    monkeypatch.setattr(llm_module, "asyncio", SimpleNamespace(sleep=sleep))
    return sleep


# --- extract_json ---


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_prose_around_object(self):
        raw = 'Here is my analysis:\n{"summary": "ok", "nested": {"x": 2}}\nThanks!'
        assert extract_json(raw) == {"summary": "ok", "nested": {"x": 2}}

    def test_not_json(self):
        with pytest.raises(LLMError, match="Failed to parse"):
            extract_json("I cannot help with that.")

    def test_array_rejected(self):
        with pytest.raises(LLMError, match="Expected JSON object"):
            extract_json("[1, 2, 3]")


# --- Analyst ---


class TestAnalyzeStock:
    async def test_structured_result(self, make_record):
        provider = FakeProvider(STOCK_JSON)
        analysis = await IpoAnalyst(provider).analyze_stock(make_record())

        assert analysis.symbol == "ACME"
        assert analysis.provider == "fake"
        assert analysis.risk_level == RiskLevel.HIGH
        assert analysis.recommendation == Recommendation.BUY
        assert analysis.price_target == 18.5
        assert analysis.pros == ["Growing market", "Experienced team"]
        assert analysis.key_metrics["marketCap"] == "$1.2B"

    async def test_prompt_has_stock_details(self, make_record):
        provider = FakeProvider(STOCK_JSON)
        await IpoAnalyst(provider).analyze_stock(make_record(sector=None, price_range=None))
        prompt = provider.prompts[0]
        assert "Symbol: ACME" in prompt
        assert "Expected price: $12.5" in prompt
        assert "Price range: TBD" in prompt
        assert "Sector: Unknown" in prompt

    async def test_unknown_enums_default(self, make_record):
        reply = json.dumps({"summary": "x", "riskLevel": "extreme", "recommendation": 7})
        analysis = await IpoAnalyst(FakeProvider(reply)).analyze_stock(make_record())
        assert analysis.risk_level == RiskLevel.MEDIUM
        assert analysis.recommendation == Recommendation.WATCH
        assert analysis.pros == []

    async def test_missing_summary_raises(self, make_record, no_sleep):
        with pytest.raises(LLMError, match="missing 'summary'"):
            await IpoAnalyst(FakeProvider('{"pros": []}')).analyze_stock(make_record())

    async def test_retries_then_succeeds(self, make_record, no_sleep):
        provider = FakeProvider(LLMError("boom"), "not json at all", STOCK_JSON)
        analysis = await IpoAnalyst(provider, backoff_base=2.0).analyze_stock(make_record())

        assert analysis.summary.startswith("Acme")
        assert len(provider.prompts) == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [2.0, 4.0]

    async def test_exhausted_retries(self, make_record, no_sleep):
        provider = FakeProvider(LLMError("a"), LLMError("b"), LLMError("c"))
        with pytest.raises(LLMError, match="failed after 3 attempts") as exc_info:
            await IpoAnalyst(provider).analyze_stock(make_record())
        assert exc_info.value.context["kind"] == "stock"


class TestAnalyzeMarket:
    async def test_market_overview(self, make_record):
        stocks = [
            make_record(symbol="A", expected_price=10.0),
            make_record(symbol="B", expected_price=20.0, status=IpoStatus.PRICING),
            make_record(symbol="C", expected_price=None),
        ]
        provider = FakeProvider(MARKET_JSON)
        analysis = await IpoAnalyst(provider).analyze_market(stocks)

        assert analysis.outlook == MarketOutlook.BULLISH
        assert analysis.trends == ["AI listings"]
        prompt = provider.prompts[0]
        assert "Total IPOs: 3" in prompt
        assert "Upcoming: 2" in prompt
        assert "Pricing: 1" in prompt
        assert "Average expected price: $15.00" in prompt


class TestAnalyzeFiling:
    async def test_scores_clamped_and_defaulted(self):
        analysis = await IpoAnalyst(FakeProvider(FILING_JSON)).analyze_filing(
            ticker="ACME", company_name="Acme", form_type="10-K", content="Revenue grew."
        )
        assert analysis.document_type == "10-K filing"
        assert analysis.scores == {
            "overallScore": 100.0,
            "profitabilityScore": 0.0,
            "liquidityScore": 70.0,
            "solvencyScore": DEFAULT_SCORE,
        }
        assert analysis.financial_metrics == {"revenue": 1200000.0, "netIncome": -50000.0}
        assert analysis.confidence_score == 85.0
        assert analysis.target_price is None
        assert analysis.recommendation == Recommendation.HOLD

    async def test_html_is_summarized(self):
        html = (
            "<html><body><p>RISK FACTORS Our business is risky.</p>"
            "<table><tr><td>Total revenue</td><td>1,000</td></tr></table></body></html>"
        )
        provider = FakeProvider(FILING_JSON)
        await IpoAnalyst(provider).analyze_filing(None, "Acme", "S-1", html)

        prompt = provider.prompts[0]
        assert "SEC FILING ANALYSIS CONTENT" in prompt
        assert "<table>" not in prompt
        assert "(None)" not in prompt

    async def test_empty_content(self):
        with pytest.raises(AnalysisError, match="empty"):
            await IpoAnalyst(FakeProvider()).analyze_filing("ACME", "Acme", "10-K", "   ")

    async def test_prospectus(self):
        analysis = await IpoAnalyst(FakeProvider(FILING_JSON)).analyze_prospectus(
            "Acme", "We are offering 5,000,000 shares."
        )
        assert analysis.document_type == "IPO prospectus"
        assert analysis.ticker is None

    async def test_empty_prospectus(self):
        with pytest.raises(AnalysisError, match="Prospectus text is empty"):
            await IpoAnalyst(FakeProvider()).analyze_prospectus("Acme", "")


# --- Providers ---


class TestCreateProvider:
    def test_default_provider_needs_key(self):
        with pytest.raises(ConfigError, match="Perplexity API key"):
            create_provider(LLMConfig())

    def test_perplexity(self):
        provider = create_provider(LLMConfig(perplexity_api_key="pplx"))
        assert isinstance(provider, PerplexityProvider)
        assert provider.name == "perplexity"
        assert isinstance(provider, LLMProviderBackend)

    def test_github_override(self):
        provider = create_provider(LLMConfig(github_token="ghp"), LLMProvider.GITHUB)
        assert isinstance(provider, GitHubModelsProvider)
        assert provider.name == "github"

    def test_claude(self):
        provider = create_provider(
            LLMConfig(default_provider=LLMProvider.CLAUDE, anthropic_api_key="sk-ant")
        )
        assert isinstance(provider, ClaudeProvider)
        assert provider.name == "claude"

    def test_claude_needs_key(self):
        with pytest.raises(ConfigError, match="Anthropic API key"):
            create_provider(LLMConfig(), LLMProvider.CLAUDE)

    def test_create_analyst(self):
        analyst = create_analyst(LLMConfig(perplexity_api_key="pplx", max_tokens=500))
        assert analyst.provider_name == "perplexity"


class TestProviderHttp:
    @respx.mock
    async def test_perplexity_completion(self):
        respx.post("https://api.perplexity.ai/chat/completions").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": "cmpl-1",
                    "object": "chat.completion",
                    "created": 0,
                    "model": "sonar-pro",
                    "choices": [
                        {
                            "index": 0,
                            "message": {"role": "assistant", "content": '{"summary": "ok"}'},
                            "finish_reason": "stop",
                        }
                    ],
                },
            )
        )
        provider = PerplexityProvider("pplx", "https://api.perplexity.ai", "sonar-pro")
        assert await provider.query("hi") == '{"summary": "ok"}'

    @respx.mock
    async def test_perplexity_error(self):
        respx.post("https://api.perplexity.ai/chat/completions").mock(
            return_value=httpx.Response(400, json={"error": {"message": "bad"}})
        )
        provider = PerplexityProvider("pplx", "https://api.perplexity.ai", "sonar-pro")
        with pytest.raises(LLMError, match="perplexity API error: 400") as exc_info:
            await provider.query("hi")
        assert exc_info.value.context["status_code"] == 400

    @respx.mock
    async def test_claude_joins_text_blocks(self):
        respx.post("https://api.anthropic.com/v1/messages").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": "msg_1",
                    "type": "message",
                    "role": "assistant",
                    "model": "claude-sonnet-4-20250514",
                    "content": [
                        {"type": "text", "text": '{"summary": '},
                        {"type": "text", "text": '"ok"}'},
                    ],
                    "stop_reason": "end_turn",
                    "stop_sequence": None,
                    "usage": {"input_tokens": 5, "output_tokens": 5},
                },
            )
        )
        provider = ClaudeProvider("sk-ant")
        assert await provider.query("hi") == '{"summary": "ok"}'

    @respx.mock
    async def test_claude_error(self):
        respx.post("https://api.anthropic.com/v1/messages").mock(
            return_value=httpx.Response(
                400,
                json={"type": "error", "error": {"type": "invalid_request_error", "message": "bad"}},
            )
        )
        with pytest.raises(LLMError, match="Anthropic API error"):
            await ClaudeProvider("sk-ant").query("hi")
