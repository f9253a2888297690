"""Tests for the AI-agent and MCP repository classifiers."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

import pytest

from ipo_tracker.catalog.classify import (
    AI_AGENT_SEARCH_QUERIES,
    MCP_SEARCH_QUERIES,
    categorize_ai_agent,
    categorize_mcp,
    extract_capabilities,
    extract_tags,
    infer_pricing,
    is_ai_agent_related,
    is_mcp_related,
    is_official_ai_repo,
    is_official_mcp_repo,
    popularity_score,
)
from ipo_tracker.core.models import AIAgentCategory, McpCategory, PricingType

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestCategorizeAiAgent:
    def test_first_matching_rule_wins(self, make_repo):
        repo = make_repo(description="Chat bot that writes code")
        assert categorize_ai_agent(repo) == AIAgentCategory.CODING

    def test_later_rule(self, make_repo):
        repo = make_repo(description="A customer support chatbot")
        assert categorize_ai_agent(repo) == AIAgentCategory.CUSTOMER_SERVICE

    def test_topic_exact_match(self, make_repo):
        repo = make_repo(name="x1", description=None, topics=["trading"])
        assert categorize_ai_agent(repo) == AIAgentCategory.FINANCE

    def test_readme_contributes(self, make_repo):
        repo = make_repo(name="x1", description=None, topics=[])
        assert categorize_ai_agent(repo, readme="Helps with tutoring") == AIAgentCategory.EDUCATION

    def test_default_other(self, make_repo):
        assert categorize_ai_agent(make_repo()) == AIAgentCategory.OTHER


@pytest.mark.unit
class TestCategorizeMcp:
    def test_database(self, make_repo):
        repo = make_repo(name="mcp-server-postgres", description="MCP server for PostgreSQL", topics=[])
        assert categorize_mcp(repo) == McpCategory.DATABASE

    def test_order_matters(self, make_repo):
        repo = make_repo(name="mcp-x", description="git database tool", topics=[])
        assert categorize_mcp(repo) == McpCategory.DEVELOPMENT

    def test_default_other(self, make_repo):
        repo = make_repo(name="mcp-x", description="MCP thing", topics=[])
        assert categorize_mcp(repo) == McpCategory.OTHER


@pytest.mark.unit
class TestRelatedness:
    def test_agent_repo(self, make_repo):
        assert is_ai_agent_related(make_repo()) is True

    def test_agent_excluded_terms(self, make_repo):
        repo = make_repo(description="AI agent for blockchain trading")
        assert is_ai_agent_related(repo) is False

    def test_ai_company_owner_without_agent_words(self, make_repo):
        repo = make_repo(
            name="python-sdk", owner="openai", description="Python library for the LLM API", topics=[]
        )
        assert is_ai_agent_related(repo) is True

    def test_needs_agent_vocabulary(self, make_repo):
        repo = make_repo(name="trip-planner", description="Travel booking tool", topics=[])
        assert is_ai_agent_related(repo) is False

    def test_mcp_repo(self, make_repo):
        repo = make_repo(name="mcp-server-git", description="MCP server for git", topics=[])
        assert is_mcp_related(repo) is True

    def test_mcp_topic(self, make_repo):
        repo = make_repo(name="bridge", description="Tool bridge", topics=["mcp-server"])
        assert is_mcp_related(repo) is True

    def test_mcp_excluded(self, make_repo):
        repo = make_repo(name="mcp-tunes", description="MCP server for music playlists", topics=[])
        assert is_mcp_related(repo) is False

    def test_official_mcp_owner(self, make_repo):
        repo = make_repo(
            name="servers", owner="modelcontextprotocol",
            description="Reference implementations", topics=[],
        )
        assert is_mcp_related(repo) is True
        assert is_official_mcp_repo(repo) is True

    def test_official_ai(self, make_repo):
        assert is_official_ai_repo(make_repo(owner="Anthropic")) is True
        assert is_official_ai_repo(make_repo(stars=6000)) is True
        assert is_official_ai_repo(make_repo()) is False


@pytest.mark.unit
class TestPopularity:
    def test_formula(self, make_repo):
        repo = make_repo(stars=250, forks=40, updated_at=NOW - timedelta(days=5))
        freshness = 1 / math.log10(6)
        assert popularity_score(repo, NOW) == pytest.approx(100 + 8 + freshness * 40)

    def test_recent_update_floors_days(self, make_repo):
        repo = make_repo(stars=0, forks=0, updated_at=NOW - timedelta(hours=1))
        assert popularity_score(repo, NOW) == pytest.approx(40 / math.log10(2))

    def test_stale_repo_still_scores(self, make_repo):
        repo = make_repo(stars=0, forks=0, updated_at=NOW - timedelta(days=9999))
        assert popularity_score(repo, NOW) == pytest.approx(40 / math.log10(10000))


@pytest.mark.unit
class TestMetadata:
    def test_tags_topics_first(self, make_repo):
        repo = make_repo(description="Built with python and langchain using openai gpt")
        assert extract_tags(repo) == ["ai-agent", "llm", "python", "openai", "gpt", "langchain"]

    def test_tags_capped(self, make_repo):
        repo = make_repo(topics=[f"t{i}" for i in range(10)])
        assert extract_tags(repo) == [f"t{i}" for i in range(8)]

    def test_capabilities(self, make_repo):
        repo = make_repo(description="chat assistant with web search and voice")
        assert extract_capabilities(repo) == ["Conversation", "Web search", "Multimodal"]

    @pytest.mark.parametrize(
        "description, expected",
        [
            ("Open source agent", PricingType.FREE),
            ("Freemium plan available", PricingType.FREE),
            ("Subscription required", PricingType.FREEMIUM),
            ("Premium plans only", PricingType.PAID),
            ("Agent", PricingType.FREE),
        ],
    )
    def test_pricing(self, make_repo, description, expected):
        assert infer_pricing(make_repo(description=description)) == expected


@pytest.mark.unit
class TestSearchQueries:
    def test_agent_queries(self):
        assert len(AI_AGENT_SEARCH_QUERIES) == 10

    def test_mcp_queries_filtered_by_recency(self):
        assert len(MCP_SEARCH_QUERIES) == 6
        assert all(
            q.endswith(" created:>2024-01-01 stars:>5 sort:updated-desc") for q in MCP_SEARCH_QUERIES
        )
