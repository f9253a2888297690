"""Sync GitHub repository search results into the AI-agent and MCP catalogs."""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import Callable

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
from ipo_tracker.catalog.github import GitHubClient
from ipo_tracker.core.config import GitHubConfig
from ipo_tracker.core.exceptions import SourceError
from ipo_tracker.core.models import (
    AIAgent,
    CatalogKind,
    CatalogSyncResult,
    GitHubRepo,
    McpApp,
)
from ipo_tracker.ingestion.store import IpoStockStore

logger = logging.getLogger(__name__)

FEATURED_STAR_THRESHOLD = 1000


def display_name(repo_name: str) -> str:
    """Title-case a repository name: my-cool_agent -> My Cool Agent."""
    spaced = re.sub(r"[-_]", " ", repo_name)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


def repo_to_ai_agent(
    repo: GitHubRepo,
    readme: str | None,
    now: datetime | None = None,
) -> AIAgent | None:
    """Convert a repository to an AIAgent, or None if it is not agent-related."""
    if not is_ai_agent_related(repo, readme):
        return None

    now = now or datetime.now(UTC)
    score = popularity_score(repo, now)
    verified = is_official_ai_repo(repo)
    name = display_name(repo.name)

    return AIAgent(
        id=f"{repo.owner}/{name}",
        name=name,
        creator=repo.owner,
        description=repo.description,
        category=categorize_ai_agent(repo, readme),
        website=repo.homepage_url or repo.url,
        users=int(repo.stars * 10 + repo.forks * 5),
        rating=min(5.0, max(1.0, score / 20)),
        featured=repo.stars > FEATURED_STAR_THRESHOLD or verified,
        capabilities=extract_capabilities(repo, readme),
        tags=extract_tags(repo, readme),
        verified=verified,
        pricing=infer_pricing(repo, readme),
        popularity_score=score,
        last_updated=repo.updated_at,
        synced_at=now,
    )


def repo_to_mcp_app(
    repo: GitHubRepo,
    readme: str | None,
    now: datetime | None = None,
) -> McpApp | None:
    """Convert a repository to an McpApp, or None if it is not MCP-related."""
    if not is_mcp_related(repo, readme):
        return None

    now = now or datetime.now(UTC)
    return McpApp(
        github_url=repo.url,
        name=repo.name,
        full_name=repo.name_with_owner,
        author=repo.owner,
        description=repo.description,
        category=categorize_mcp(repo, readme),
        homepage=repo.homepage_url,
        stars=repo.stars,
        forks=repo.forks,
        issues=repo.open_issues,
        language=repo.language,
        license=repo.license,
        topics=list(repo.topics),
        is_official=is_official_mcp_repo(repo),
        popularity_score=popularity_score(repo, now),
        last_updated=repo.updated_at,
        created_at=repo.created_at,
        synced_at=now,
    )


class CatalogSync:
    """Pages through every search query for one catalog and upserts matches.

    A failing repository is logged and recorded; a failing page ends that
    query and the next query starts.
    """

    def __init__(
        self,
        kind: CatalogKind,
        client: GitHubClient,
        store: IpoStockStore,
        queries: tuple[str, ...] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.kind = kind
        self._client = client
        self._store = store
        if queries is None:
            queries = (
                AI_AGENT_SEARCH_QUERIES if kind == CatalogKind.AI_AGENTS else MCP_SEARCH_QUERIES
            )
        self._queries = queries
        self._now = now or (lambda: datetime.now(UTC))

    async def close(self) -> None:
        await self._client.close()

    async def sync_all(self) -> CatalogSyncResult:
        result = CatalogSyncResult(queries=len(self._queries))
        logger.info("Starting %s catalog sync (%d queries)", self.kind, len(self._queries))

        for query in self._queries:
            synced = await self._sync_query(query, result)
            result.total_synced += synced

        logger.info(
            "%s catalog sync finished: synced=%d skipped=%d errors=%d",
            self.kind, result.total_synced, result.skipped, len(result.errors),
        )
        return result

    async def _sync_query(self, query: str, result: CatalogSyncResult) -> int:
        synced = 0
        after: str | None = None

        while True:
            try:
                page = await self._client.search_repositories(query, after=after)
            except SourceError as e:
                logger.error("Search query %r failed: %s", query, e)
                result.errors.append(f"Query '{query}' failed: {e}")
                break

            for repo in page.repos:
                try:
                    if await self._sync_repo(repo):
                        synced += 1
                    else:
                        result.skipped += 1
                except Exception as e:
                    logger.warning("Failed to sync %s: %s", repo.name_with_owner, e)
                    result.errors.append(f"Failed to sync {repo.name_with_owner}: {e}")

            if not page.has_next_page or not page.end_cursor:
                break
            after = page.end_cursor

        logger.info("Query %r synced %d repositories", query, synced)
        return synced

    async def _sync_repo(self, repo: GitHubRepo) -> bool:
        readme = await self._client.get_readme(repo.owner, repo.name)
        now = self._now()

        if self.kind == CatalogKind.AI_AGENTS:
            agent = repo_to_ai_agent(repo, readme, now)
            if agent is None:
                logger.debug("Skipping non-agent repository %s", repo.name_with_owner)
                return False
            await self._store.upsert_ai_agent(agent)
        else:
            app = repo_to_mcp_app(repo, readme, now)
            if app is None:
                logger.debug("Skipping non-MCP repository %s", repo.name_with_owner)
                return False
            await self._store.upsert_mcp_app(app)
        return True


def create_catalog_sync(
    kind: CatalogKind,
    config: GitHubConfig,
    store: IpoStockStore,
) -> CatalogSync:
    return CatalogSync(kind, GitHubClient(config), store)
