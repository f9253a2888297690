"""GitHub repository catalogs of AI agents and MCP servers."""

from ipo_tracker.catalog.github import GitHubClient, SearchPage
from ipo_tracker.catalog.sync import (
    CatalogSync,
    create_catalog_sync,
    repo_to_ai_agent,
    repo_to_mcp_app,
)

__all__ = [
    "GitHubClient",
    "SearchPage",
    "CatalogSync",
    "create_catalog_sync",
    "repo_to_ai_agent",
    "repo_to_mcp_app",
]
