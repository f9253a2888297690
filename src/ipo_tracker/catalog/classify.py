"""Keyword classifiers for AI-agent and MCP repositories.

Rule lists are ordered and the first matching rule wins, so the order of
every list below is part of the behavior. Matching is substring-based on
lower-cased text, plus exact matches against repository topics.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime

from ipo_tracker.core.models import AIAgentCategory, GitHubRepo, McpCategory, PricingType

# --- AI agents ---

AI_AGENT_CATEGORY_RULES: tuple[tuple[AIAgentCategory, tuple[str, ...]], ...] = (
    (AIAgentCategory.CODING, ("code", "programming", "github", "copilot", "ide", "vscode", "development", "coding")),
    (AIAgentCategory.CONTENT, ("content", "writing", "blog", "article", "text", "copywriting", "marketing")),
    (AIAgentCategory.CREATIVE, ("image", "art", "design", "creative", "generate", "midjourney", "stable-diffusion")),
    (AIAgentCategory.RESEARCH, ("research", "search", "analysis", "perplexity", "web-search", "knowledge")),
    (AIAgentCategory.CUSTOMER_SERVICE, ("customer", "service", "support", "chatbot", "helpdesk", "chat")),
    (AIAgentCategory.AUTOMATION, ("automation", "workflow", "zapier", "n8n", "process", "task")),
    (AIAgentCategory.ANALYTICS, ("analytics", "data", "metrics", "dashboard", "chart", "visualization")),
    (AIAgentCategory.COMMUNICATION, ("communication", "slack", "discord", "telegram", "email", "notification")),
    (AIAgentCategory.EDUCATION, ("education", "learning", "tutor", "teaching", "course", "training")),
    (AIAgentCategory.FINANCE, ("finance", "trading", "crypto", "investment", "banking", "money")),
    (AIAgentCategory.HEALTHCARE, ("health", "medical", "healthcare", "diagnosis", "therapy", "wellness")),
    (AIAgentCategory.ENTERTAINMENT, ("game", "entertainment", "fun", "music", "video", "media")),
    (AIAgentCategory.MARKETING, ("marketing", "seo", "social", "advertising", "campaign", "brand")),
    (AIAgentCategory.PRODUCTIVITY, ("productivity", "calendar", "todo", "note", "document", "organization")),
)

AI_AGENT_KEYWORDS: tuple[str, ...] = (
    "ai agent", "ai-agent", "autonomous agent", "intelligent agent",
    "chatbot", "chat bot", "ai bot", "ai assistant", "virtual assistant",
    "llm agent", "gpt agent", "claude agent", "openai agent",
    "conversational ai", "dialogue system", "ai automation",
    "langchain", "autogen", "crewai", "multi-agent",
    "agent framework", "agent platform", "ai workflow",
)

AI_COMPANY_OWNERS: frozenset[str] = frozenset({
    "openai", "anthropic", "microsoft", "google", "meta",
    "langchain-ai", "hwchase17", "crewai-ai",
})

AI_AGENT_EXCLUDE_KEYWORDS: tuple[str, ...] = (
    "cryptocurrency", "bitcoin", "blockchain", "crypto",
    "ecommerce", "e-commerce", "shopping", "store",
    "game engine", "gaming platform", "3d engine",
    "operating system", "kernel", "driver",
    "hardware", "firmware", "embedded",
)

AI_KEYWORDS: tuple[str, ...] = (
    "ai", "artificial intelligence", "machine learning", "ml",
    "deep learning", "neural network", "llm", "gpt", "bert",
    "transformer", "nlp", "natural language",
)

OFFICIAL_AI_OWNERS: frozenset[str] = frozenset({
    "openai", "anthropic", "microsoft", "google", "meta",
    "langchain-ai", "hwchase17", "crewai-ai", "autogen-ai",
    "guidance-ai", "semantic-kernel", "llamaindex",
})
VERIFIED_STAR_THRESHOLD = 5000

TAG_KEYWORDS: tuple[str, ...] = (
    "python", "javascript", "typescript", "react", "node.js",
    "openai", "gpt", "claude", "llama", "mistral",
    "langchain", "vector-db", "embeddings", "rag",
    "streamlit", "gradio", "huggingface", "transformers",
)
MAX_TAGS = 8

CAPABILITY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Conversation", ("chat", "conversation", "dialogue", "talk")),
    ("Text generation", ("generate text", "text generation", "writing", "content creation")),
    ("Code generation", ("code generation", "coding", "programming", "code completion")),
    ("Image generation", ("image generation", "image creation", "art generation", "visual")),
    ("Data analysis", ("data analysis", "analytics", "insights", "statistics")),
    ("Web search", ("web search", "search", "web scraping", "information retrieval")),
    ("Task automation", ("automation", "workflow", "task scheduling", "process")),
    ("Multimodal", ("multimodal", "vision", "audio", "speech", "voice")),
    ("Knowledge Q&A", ("question answering", "q&a", "knowledge", "information")),
    ("Sentiment analysis", ("sentiment analysis", "emotion", "mood", "feeling")),
)
MAX_CAPABILITIES = 6

AI_AGENT_SEARCH_QUERIES: tuple[str, ...] = (
    '"ai agent" OR "ai-agent" OR "autonomous agent" stars:>10',
    '"chatbot" OR "chat bot" OR "ai bot" stars:>10',
    '"llm agent" OR "gpt agent" OR "ai assistant" stars:>10',
    '"virtual assistant" OR "conversational ai" stars:>10',
    '"langchain" OR "autogen" OR "crewai" stars:>10',
    '"ai automation" OR "intelligent agent" stars:>10',
    "topic:chatbot OR topic:ai-agent OR topic:llm stars:>5",
    "topic:artificial-intelligence topic:agent stars:>5",
    "openai agent OR claude agent OR anthropic agent",
    "multi-agent OR agent-framework OR agent-platform stars:>5",
)

# --- MCP ---

MCP_CATEGORY_RULES: tuple[tuple[McpCategory, tuple[str, ...]], ...] = (
    (McpCategory.DEVELOPMENT, ("github", "git", "vscode", "ide", "development", "coding", "programming")),
    (McpCategory.CLOUD_SERVICES, ("aws", "azure", "gcp", "cloud", "docker", "kubernetes")),
    (McpCategory.DATABASE, ("postgres", "mysql", "mongodb", "database", "sql", "redis")),
    (McpCategory.AI_ML, ("ai", "ml", "machine-learning", "openai", "claude", "llm", "gpt")),
    (McpCategory.WEB_SCRAPING, ("scraping", "scraper", "crawler", "puppeteer", "selenium")),
    (McpCategory.AUTOMATION, ("automation", "workflow", "ci", "cd", "deployment")),
    (McpCategory.SECURITY, ("security", "auth", "oauth", "jwt", "encryption", "ssl")),
    (McpCategory.COMMUNICATION, ("slack", "discord", "telegram", "email", "notification")),
    (McpCategory.FINANCE, ("finance", "crypto", "blockchain", "trading", "payment")),
    (McpCategory.TESTING, ("test", "testing", "playwright", "selenium", "cypress")),
    (McpCategory.DATA_ANALYSIS, ("analytics", "data", "chart", "visualization", "metrics")),
    (McpCategory.PRODUCTIVITY, ("productivity", "calendar", "todo", "note", "document")),
    (McpCategory.CREATIVE, ("image", "video", "audio", "design", "creative", "media")),
    (McpCategory.ENTERPRISE, ("enterprise", "business", "crm", "erp", "corporate")),
)

MCP_KEYWORDS: tuple[str, ...] = (
    "mcp",
    "model context protocol",
    "mcp-server",
    "mcp server",
    "mcp-client",
    "mcp client",
    "anthropic mcp",
)

OFFICIAL_MCP_OWNERS: frozenset[str] = frozenset({
    "modelcontextprotocol",
    "anthropics",
    "anthropic-ai",
})

MCP_EXCLUDE_KEYWORDS: tuple[str, ...] = (
    "not mcp", "non-mcp", "fake mcp",
    "cryptocurrency", "bitcoin", "blockchain", "crypto",
    "ecommerce", "e-commerce", "shopping",
    "game", "gaming", "minecraft",
    "music", "audio", "video",
    "mobile app", "android", "ios",
    "wordpress", "cms", "blog",
)

_MCP_BASE_QUERIES: tuple[str, ...] = (
    "mcp-server in:name,description",
    '"model context protocol" in:name,description,readme',
    "mcp server in:name,description",
    "anthropic mcp in:name,description",
    "topic:mcp",
    "topic:model-context-protocol",
)
MCP_SEARCH_QUERIES: tuple[str, ...] = tuple(
    f"{q} created:>2024-01-01 stars:>5 sort:updated-desc" for q in _MCP_BASE_QUERIES
)


# --- Helpers ---


def _full_text(repo: GitHubRepo, readme: str | None) -> str:
    return f"{repo.name} {repo.description or ''} {readme or ''}".lower()


def _body_text(repo: GitHubRepo, readme: str | None) -> str:
    return f"{repo.description or ''} {readme or ''}".lower()


def _topics(repo: GitHubRepo) -> list[str]:
    return [t.lower() for t in repo.topics]


def _first_match(rules, text: str, topics: list[str], default):
    for category, keywords in rules:
        if any(k in text or k in topics for k in keywords):
            return category
    return default


# --- Classifiers ---


def categorize_ai_agent(repo: GitHubRepo, readme: str | None = None) -> AIAgentCategory:
    return _first_match(
        AI_AGENT_CATEGORY_RULES, _full_text(repo, readme), _topics(repo), AIAgentCategory.OTHER
    )


def categorize_mcp(repo: GitHubRepo, readme: str | None = None) -> McpCategory:
    return _first_match(
        MCP_CATEGORY_RULES, _full_text(repo, readme), _topics(repo), McpCategory.OTHER
    )


def is_ai_agent_related(repo: GitHubRepo, readme: str | None = None) -> bool:
    """Agent vocabulary (or a known AI company owner), AI vocabulary, no excluded terms."""
    text = _full_text(repo, readme)
    topics = _topics(repo)

    has_agent_keyword = any(
        k in text or k.replace(" ", "-") in topics for k in AI_AGENT_KEYWORDS
    )
    from_ai_company = repo.owner.lower() in AI_COMPANY_OWNERS
    excluded = any(k in text for k in AI_AGENT_EXCLUDE_KEYWORDS)
    has_ai_keyword = any(k in text or k in topics for k in AI_KEYWORDS)

    return (has_agent_keyword or from_ai_company) and has_ai_keyword and not excluded


def is_mcp_related(repo: GitHubRepo, readme: str | None = None) -> bool:
    """MCP vocabulary or an official MCP owner, and no excluded terms."""
    text = _full_text(repo, readme)
    topics = _topics(repo)

    has_mcp_keyword = any(
        k in text or k.replace(" ", "-") in topics for k in MCP_KEYWORDS
    )
    official = is_official_mcp_repo(repo)
    excluded = any(k in text for k in MCP_EXCLUDE_KEYWORDS)

    return (has_mcp_keyword or official) and not excluded


def is_official_ai_repo(repo: GitHubRepo) -> bool:
    return repo.owner.lower() in OFFICIAL_AI_OWNERS or repo.stars > VERIFIED_STAR_THRESHOLD


def is_official_mcp_repo(repo: GitHubRepo) -> bool:
    return repo.owner.lower() in OFFICIAL_MCP_OWNERS


def popularity_score(repo: GitHubRepo, now: datetime | None = None) -> float:
    """Stars 40%, forks 20%, freshness 40%.

    Freshness is max(0.1, 1 / log10(days_since_update + 1)) with the day
    count floored at 1.
    """
    now = now or datetime.now(UTC)
    days = max(1.0, (now - repo.updated_at).total_seconds() / 86400)
    freshness = max(0.1, 1 / math.log10(days + 1))
    return repo.stars * 0.4 + repo.forks * 0.2 + freshness * 100 * 0.4


def extract_tags(repo: GitHubRepo, readme: str | None = None) -> list[str]:
    """Topics first, then known technology keywords; at most eight."""
    tags: dict[str, None] = dict.fromkeys(repo.topics)
    text = _body_text(repo, readme)
    for keyword in TAG_KEYWORDS:
        if keyword in text:
            tags.setdefault(keyword)
    return list(tags)[:MAX_TAGS]


def extract_capabilities(repo: GitHubRepo, readme: str | None = None) -> list[str]:
    text = _body_text(repo, readme)
    found = [
        label for label, keywords in CAPABILITY_RULES if any(k in text for k in keywords)
    ]
    return found[:MAX_CAPABILITIES]


def infer_pricing(repo: GitHubRepo, readme: str | None = None) -> PricingType:
    text = _body_text(repo, readme)
    if "free" in text or "open source" in text or "mit license" in text:
        return PricingType.FREE
    if "freemium" in text or "free trial" in text or "subscription" in text:
        return PricingType.FREEMIUM
    if "paid" in text or "premium" in text or "enterprise" in text:
        return PricingType.PAID
    return PricingType.FREE
