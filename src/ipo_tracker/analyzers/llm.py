"""LLM-backed IPO analysis with pluggable provider backends."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from enum import StrEnum
from typing import Any, Iterable, Protocol, TypeVar, runtime_checkable

import anthropic
import openai

from ipo_tracker.analyzers.filing import MAX_SUMMARY_CHARS, summarize_filing_html
from ipo_tracker.core.config import LLMConfig
from ipo_tracker.core.exceptions import AnalysisError, ConfigError, LLMError
from ipo_tracker.core.models import (
    CanonicalStockRecord,
    FilingAnalysis,
    IpoStatus,
    IpoStock,
    LLMProvider,
    MarketAnalysis,
    MarketOutlook,
    Recommendation,
    RiskLevel,
    StockAnalysis,
)

logger = logging.getLogger(__name__)

# --- Prompt Templates ---

STOCK_PROMPT_TEMPLATE = """You are an IPO investment analyst. Analyze the following IPO and give an investment view.

Company:
- Symbol: {symbol}
- Name: {company_name}
- Market: {market}
- Expected price: {expected_price}
- Price range: {price_range}
- Shares offered: {shares_offered}
- IPO date: {ipo_date}
- Status: {status}
- Sector: {sector}

Respond with ONLY a JSON object with exactly these fields:
{{
  "summary": "80-120 word summary",
  "pros": ["strength", "..."],
  "cons": ["weakness", "..."],
  "riskLevel": "Low" | "Medium" | "High",
  "recommendation": "Buy" | "Hold" | "Sell" | "Watch",
  "priceTarget": number or null,
  "keyMetrics": {{"marketCap": "estimate", "expectedGrowth": "estimate"}}
}}"""

MARKET_PROMPT_TEMPLATE = """You are an IPO market analyst. Assess the current IPO market from this data.

Overview:
- Total IPOs: {total}
- Upcoming: {upcoming}
- Pricing: {pricing}
- Average expected price: ${avg_price:.2f}

Sample:
{sample}

Respond with ONLY a JSON object with exactly these fields:
{{
  "marketOverview": "120-180 word overview",
  "trends": ["trend", "..."],
  "opportunities": ["opportunity", "..."],
  "risks": ["risk", "..."],
  "outlook": "Bullish" | "Bearish" | "Neutral"
}}"""

FILING_PROMPT_TEMPLATE = """You are a financial analyst reviewing a {document_type} for {company_name}{ticker_note}.

Respond with ONLY a JSON object with exactly these fields:
{{
  "summary": "overall assessment",
  "keyFindings": ["finding", "..."],
  "strengths": ["strength", "..."],
  "weaknesses": ["weakness", "..."],
  "risks": ["risk", "..."],
  "opportunities": ["opportunity", "..."],
  "financialMetrics": {{"revenue": number, "netIncome": number, "totalAssets": number, "totalDebt": number, "cashAndEquivalents": number}},
  "scores": {{"overallScore": 0-100, "profitabilityScore": 0-100, "liquidityScore": 0-100, "solvencyScore": 0-100}},
  "recommendation": "Buy" | "Hold" | "Sell" | "Watch",
  "confidenceScore": 0-100,
  "targetPrice": number or null
}}

--- DOCUMENT ---
{content}
--- END DOCUMENT ---"""

SCORE_NAMES = ("overallScore", "profitabilityScore", "liquidityScore", "solvencyScore")
DEFAULT_SCORE = 50.0
MAX_LIST_ITEMS = 10

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_HTML_RE = re.compile(r"<(?:html|body|div|p|table|span|br|head)\b", re.IGNORECASE)


# --- Provider Protocol ---


@runtime_checkable
class LLMProviderBackend(Protocol):
    """Protocol for LLM API backends."""

    @property
    def name(self) -> str: ...

    async def query(self, prompt: str, max_tokens: int = 1000) -> str: ...


# --- Provider Implementations ---


class OpenAICompatibleProvider:
    """Chat Completions provider for any OpenAI-compatible endpoint."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: float = 45.0,
        temperature: float = 0.1,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self._model = model
        self._temperature = temperature

    @property
    def name(self) -> str:
        return self.provider_name

    async def query(self, prompt: str, max_tokens: int = 1000) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
            )
        except openai.APIStatusError as e:
            raise LLMError(
                f"{self.name} API error: {e.status_code}",
                context={
                    "provider": self.name,
                    "status_code": e.status_code,
                },
            ) from e
        except openai.APIConnectionError as e:
            raise LLMError(
                f"{self.name} connection error: {e}",
                context={"provider": self.name},
            ) from e

        if not response.choices:
            raise LLMError(
                f"{self.name} returned no choices",
                context={"provider": self.name},
            )
        return response.choices[0].message.content or ""


class PerplexityProvider(OpenAICompatibleProvider):
    """Perplexity's sonar models via its OpenAI-compatible API."""

    provider_name = "perplexity"


class GitHubModelsProvider(OpenAICompatibleProvider):
    """GitHub Models inference endpoint, authenticated with a GitHub token."""

    provider_name = "github"


class ClaudeProvider:
    """LLM provider using the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self._model = model

    @property
    def name(self) -> str:
        return "claude"

    async def query(self, prompt: str, max_tokens: int = 1000) -> str:
        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as e:
            raise LLMError(
                f"Anthropic API error: {e.message}",
                context={
                    "provider": self.name,
                    "status_code": e.status_code,
                },
            ) from e
        except anthropic.APIConnectionError as e:
            raise LLMError(
                f"Anthropic connection error: {e}",
                context={"provider": self.name},
            ) from e

        return "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )


# --- Provider Factory ---


def create_provider(
    config: LLMConfig,
    provider: LLMProvider | None = None,
) -> LLMProviderBackend:
    """Create an LLM provider backend from config.

    Raises:
        ConfigError: The selected provider has no credentials configured.
    """
    provider = provider or config.default_provider

    if provider == LLMProvider.PERPLEXITY:
        if not config.perplexity_api_key:
            raise ConfigError(
                "Perplexity API key is not configured",
                context={"field": "llm.perplexity_api_key"},
            )
        return PerplexityProvider(
            api_key=config.perplexity_api_key,
            base_url=config.perplexity_base_url,
            model=config.perplexity_model,
            timeout_seconds=config.timeout_seconds,
        )
    if provider == LLMProvider.GITHUB:
        if not config.github_token:
            raise ConfigError(
                "GitHub token is not configured",
                context={"field": "llm.github_token"},
            )
        return GitHubModelsProvider(
            api_key=config.github_token,
            base_url=config.github_models_url,
            model=config.github_model,
            timeout_seconds=config.timeout_seconds,
        )
    if provider == LLMProvider.CLAUDE:
        if not config.anthropic_api_key:
            raise ConfigError(
                "Anthropic API key is not configured",
                context={"field": "llm.anthropic_api_key"},
            )
        return ClaudeProvider(
            api_key=config.anthropic_api_key,
            model=config.claude_model,
            base_url=config.anthropic_base_url,
            timeout_seconds=config.timeout_seconds,
        )
    raise ConfigError(
        f"Unknown LLM provider: {provider}",
        context={"field": "llm.default_provider", "value": str(provider)},
    )


# --- Response Parsing ---


def extract_json(raw: str) -> dict[str, Any]:
    """Pull the outermost JSON object out of an LLM reply.

    Handles markdown code fences and prose around the object.
    """
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = [line for line in cleaned.split("\n") if not line.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()

    m = _JSON_OBJECT_RE.search(cleaned)
    candidate = m.group(0) if m else cleaned

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise LLMError(
            f"Failed to parse LLM response as JSON: {e}",
            context={"response_body": raw[:500], "parse_error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise LLMError(
            f"Expected JSON object, got {type(data).__name__}",
            context={"response_body": raw[:500]},
        )
    return data


E = TypeVar("E", bound=StrEnum)


def _choice(value: Any, enum: type[E], default: E) -> E:
    if isinstance(value, str):
        for member in enum:
            if member.value.lower() == value.strip().lower():
                return member
    return default


def _str_list(value: Any, limit: int = MAX_LIST_ITEMS) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()][:limit]


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").replace("$", "").strip())
        except ValueError:
            return None
    return None


def _score(value: Any) -> float:
    n = _number(value)
    if n is None:
        return DEFAULT_SCORE
    return max(0.0, min(100.0, n))


def _required_text(data: dict[str, Any], key: str, raw_kind: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise LLMError(
            f"LLM response is missing '{key}'",
            context={"kind": raw_kind, "response_body": json.dumps(data)[:500]},
        )
    return value.strip()


def _fmt(value: Any, prefix: str = "") -> str:
    return f"{prefix}{value}" if value not in (None, "") else "TBD"


# --- Analyst ---


class IpoAnalyst:
    """Structured IPO, market, filing and prospectus analyses from an LLM.

    Transient provider failures are retried with exponential backoff. A
    reply that cannot be turned into the expected shape raises LLMError;
    there is no canned fallback analysis.
    """

    def __init__(
        self,
        provider: LLMProviderBackend,
        max_tokens: int = 1000,
        max_retries: int = 3,
        backoff_base: float = 2.0,
    ) -> None:
        self._provider = provider
        self._max_tokens = max_tokens
        self._max_retries = max(1, max_retries)
        self._backoff_base = backoff_base

    @property
    def provider_name(self) -> str:
        return self._provider.name

    async def analyze_stock(self, stock: IpoStock | CanonicalStockRecord) -> StockAnalysis:
        prompt = STOCK_PROMPT_TEMPLATE.format(
            symbol=stock.symbol,
            company_name=stock.company_name,
            market=stock.market,
            expected_price=_fmt(stock.expected_price, "$"),
            price_range=_fmt(stock.price_range),
            shares_offered=_fmt(stock.shares_offered),
            ipo_date=_fmt(stock.ipo_date),
            status=stock.status,
            sector=stock.sector or "Unknown",
        )
        data = await self._query_json(prompt, kind="stock")

        key_metrics = data.get("keyMetrics")
        return StockAnalysis(
            symbol=stock.symbol,
            company_name=stock.company_name,
            provider=self.provider_name,
            summary=_required_text(data, "summary", "stock"),
            pros=_str_list(data.get("pros")),
            cons=_str_list(data.get("cons")),
            risk_level=_choice(data.get("riskLevel"), RiskLevel, RiskLevel.MEDIUM),
            recommendation=_choice(
                data.get("recommendation"), Recommendation, Recommendation.WATCH
            ),
            price_target=_number(data.get("priceTarget")),
            key_metrics=(
                {str(k): str(v) for k, v in key_metrics.items() if v is not None}
                if isinstance(key_metrics, dict)
                else {}
            ),
        )

    async def analyze_market(
        self, stocks: Iterable[IpoStock | CanonicalStockRecord]
    ) -> MarketAnalysis:
        stocks = list(stocks)
        prices = [s.expected_price for s in stocks if s.expected_price and s.expected_price > 0]
        sample = "\n".join(
            f"- {s.symbol} ({s.company_name}): {_fmt(s.expected_price, '$')} - {s.status}"
            for s in stocks[:10]
        )
        prompt = MARKET_PROMPT_TEMPLATE.format(
            total=len(stocks),
            upcoming=sum(1 for s in stocks if s.status == IpoStatus.UPCOMING),
            pricing=sum(1 for s in stocks if s.status == IpoStatus.PRICING),
            avg_price=sum(prices) / len(prices) if prices else 0.0,
            sample=sample or "- (no IPOs tracked)",
        )
        data = await self._query_json(prompt, kind="market")

        return MarketAnalysis(
            provider=self.provider_name,
            market_overview=_required_text(data, "marketOverview", "market"),
            trends=_str_list(data.get("trends")),
            opportunities=_str_list(data.get("opportunities")),
            risks=_str_list(data.get("risks")),
            outlook=_choice(data.get("outlook"), MarketOutlook, MarketOutlook.NEUTRAL),
        )

    async def analyze_filing(
        self,
        ticker: str | None,
        company_name: str,
        form_type: str,
        content: str,
    ) -> FilingAnalysis:
        """Analyze an SEC filing. HTML content is summarized first."""
        if not content or not content.strip():
            raise AnalysisError(
                "Filing content is empty",
                context={"kind": "filing", "ticker": ticker},
            )
        if len(_HTML_RE.findall(content[:5000])) >= 2:
            content = summarize_filing_html(content)
        return await self._analyze_document(
            ticker=ticker,
            company_name=company_name,
            document_type=f"{form_type} filing",
            content=content,
            kind="filing",
        )

    async def analyze_prospectus(self, company_name: str, text: str) -> FilingAnalysis:
        """Analyze IPO prospectus text."""
        if not text or not text.strip():
            raise AnalysisError(
                "Prospectus text is empty",
                context={"kind": "prospectus", "company_name": company_name},
            )
        return await self._analyze_document(
            ticker=None,
            company_name=company_name,
            document_type="IPO prospectus",
            content=text,
            kind="prospectus",
        )

    async def _analyze_document(
        self,
        ticker: str | None,
        company_name: str,
        document_type: str,
        content: str,
        kind: str,
    ) -> FilingAnalysis:
        prompt = FILING_PROMPT_TEMPLATE.format(
            document_type=document_type,
            company_name=company_name,
            ticker_note=f" ({ticker})" if ticker else "",
            content=content[:MAX_SUMMARY_CHARS],
        )
        data = await self._query_json(prompt, kind=kind)

        raw_metrics = data.get("financialMetrics")
        metrics: dict[str, float] = {}
        if isinstance(raw_metrics, dict):
            for k, v in raw_metrics.items():
                n = _number(v)
                if n is not None:
                    metrics[str(k)] = n

        raw_scores = data.get("scores")
        raw_scores = raw_scores if isinstance(raw_scores, dict) else {}
        confidence = _number(data.get("confidenceScore"))

        return FilingAnalysis(
            ticker=ticker,
            company_name=company_name,
            document_type=document_type,
            provider=self.provider_name,
            summary=_required_text(data, "summary", kind),
            key_findings=_str_list(data.get("keyFindings")),
            strengths=_str_list(data.get("strengths")),
            weaknesses=_str_list(data.get("weaknesses")),
            risks=_str_list(data.get("risks")),
            opportunities=_str_list(data.get("opportunities")),
            financial_metrics=metrics,
            scores={name: _score(raw_scores.get(name)) for name in SCORE_NAMES},
            recommendation=_choice(
                data.get("recommendation"), Recommendation, Recommendation.WATCH
            ),
            confidence_score=max(0.0, min(100.0, confidence)) if confidence is not None else None,
            target_price=_number(data.get("targetPrice")),
        )

    async def _query_json(self, prompt: str, kind: str) -> dict[str, Any]:
        """Query the provider with exponential backoff retries."""
        last_error: LLMError | None = None
        for attempt in range(self._max_retries):
            try:
                raw = await self._provider.query(prompt, max_tokens=self._max_tokens)
                return extract_json(raw)
            except LLMError as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    backoff = self._backoff_base ** (attempt + 1)
                    logger.warning(
                        "LLM %s analysis attempt %d/%d failed: %s. Retrying in %.0fs.",
                        kind, attempt + 1, self._max_retries, e, backoff,
                    )
                    await asyncio.sleep(backoff)

        raise LLMError(
            f"LLM {kind} analysis failed after {self._max_retries} attempts: {last_error}",
            context={
                "provider": self.provider_name,
                "kind": kind,
                "attempts": self._max_retries,
            },
        )


def create_analyst(config: LLMConfig, provider: LLMProvider | None = None) -> IpoAnalyst:
    """Build an IpoAnalyst for the configured (or given) provider."""
    return IpoAnalyst(create_provider(config, provider), max_tokens=config.max_tokens)
