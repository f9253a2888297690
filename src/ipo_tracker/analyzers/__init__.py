"""AI analysis of IPOs, the IPO market, SEC filings and prospectuses."""

from ipo_tracker.analyzers.filing import FilingSummarizer, summarize_filing_html
from ipo_tracker.analyzers.llm import (
    ClaudeProvider,
    GitHubModelsProvider,
    IpoAnalyst,
    LLMProviderBackend,
    PerplexityProvider,
    create_analyst,
    create_provider,
    extract_json,
)

__all__ = [
    "FilingSummarizer",
    "summarize_filing_html",
    "LLMProviderBackend",
    "PerplexityProvider",
    "GitHubModelsProvider",
    "ClaudeProvider",
    "create_provider",
    "create_analyst",
    "extract_json",
    "IpoAnalyst",
]
