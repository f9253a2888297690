"""Throttled GitHub GraphQL client for repository search."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

import httpx
from aiolimiter import AsyncLimiter
from pydantic import BaseModel, ConfigDict

from ipo_tracker.core.config import GitHubConfig
from ipo_tracker.core.exceptions import SourceError
from ipo_tracker.core.models import GitHubRepo
from ipo_tracker.ingestion.base import SourceClient

logger = logging.getLogger(__name__)

_MAX_RETRIES_SERVER = 2

SEARCH_QUERY = """
query SearchRepos($query: String!, $first: Int!, $after: String) {
  search(query: $query, type: REPOSITORY, first: $first, after: $after) {
    nodes {
      ... on Repository {
        name
        nameWithOwner
        description
        url
        homepageUrl
        stargazerCount
        forkCount
        issues(states: OPEN) { totalCount }
        updatedAt
        createdAt
        primaryLanguage { name }
        licenseInfo { name }
        repositoryTopics(first: 20) { nodes { topic { name } } }
        owner { login }
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

README_QUERY = """
query GetReadme($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    readme: object(expression: "HEAD:README.md") {
      ... on Blob { text }
    }
  }
}
"""


class SearchPage(BaseModel):
    """One page of repository search results."""

    model_config = ConfigDict(frozen=True)

    repos: list[GitHubRepo]
    has_next_page: bool = False
    end_cursor: str | None = None


class GitHubClient(SourceClient):
    """GitHub GraphQL v4 client.

    Requests are throttled by an aiolimiter token bucket. Transient 5xx
    responses are retried with exponential backoff.
    """

    source_name = "GitHub"

    def __init__(
        self,
        config: GitHubConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            config.graphql_url,
            config.request_timeout,
            client,
            headers={"Authorization": f"Bearer {config.token}"} if config.token else None,
        )
        self._config = config
        self._limiter = AsyncLimiter(max_rate=1, time_period=1.0 / config.requests_per_second)

    async def search_repositories(
        self,
        query: str,
        first: int | None = None,
        after: str | None = None,
    ) -> SearchPage:
        """Run one page of a repository search."""
        data = await self._graphql(
            SEARCH_QUERY,
            {"query": query, "first": first or self._config.page_size, "after": after},
        )
        try:
            search = data["search"]
            repos = [
                self._node_to_repo(node)
                for node in search["nodes"]
                if node and node.get("nameWithOwner")
            ]
            page_info = search["pageInfo"]
        except (KeyError, TypeError, ValueError) as e:
            raise SourceError(
                f"Malformed GitHub search response: {e}",
                context={"source": self.source_name, "query": query},
            ) from e

        return SearchPage(
            repos=repos,
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    async def get_readme(self, owner: str, name: str) -> str | None:
        """README.md text at HEAD, or None when absent or unreadable."""
        try:
            data = await self._graphql(README_QUERY, {"owner": owner, "name": name})
        except SourceError as e:
            logger.warning("Failed to fetch README for %s/%s: %s", owner, name, e)
            return None
        repository = data.get("repository") or {}
        readme = repository.get("readme") or {}
        return readme.get("text") or None

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        if not self._config.token:
            raise SourceError(
                "GitHub token is not configured",
                context={"source": self.source_name},
            )

        for attempt in range(_MAX_RETRIES_SERVER + 1):
            await self._limiter.acquire()
            try:
                payload = await self._request_json(
                    "POST", "", json={"query": query, "variables": variables}
                )
                break
            except SourceError as e:
                status = e.context.get("status_code")
                if status in (500, 502, 503) and attempt < _MAX_RETRIES_SERVER:
                    delay = 2**attempt
                    logger.warning(
                        "GitHub server error %d, retrying in %ds (attempt %d/%d)",
                        status, delay, attempt + 1, _MAX_RETRIES_SERVER,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

        if not isinstance(payload, dict):
            raise SourceError(
                "GitHub returned a non-object GraphQL payload",
                context={"source": self.source_name},
            )
        if payload.get("errors"):
            raise SourceError(
                f"GraphQL errors: {payload['errors']}",
                context={"source": self.source_name},
            )
        return payload.get("data") or {}

    @staticmethod
    def _node_to_repo(node: dict[str, Any]) -> GitHubRepo:
        language = node.get("primaryLanguage") or {}
        license_info = node.get("licenseInfo") or {}
        topics = (node.get("repositoryTopics") or {}).get("nodes") or []
        return GitHubRepo(
            name=node["name"],
            name_with_owner=node["nameWithOwner"],
            owner=node["owner"]["login"],
            url=node["url"],
            description=node.get("description"),
            homepage_url=node.get("homepageUrl") or None,
            stars=node.get("stargazerCount") or 0,
            forks=node.get("forkCount") or 0,
            open_issues=(node.get("issues") or {}).get("totalCount") or 0,
            updated_at=datetime.fromisoformat(node["updatedAt"].replace("Z", "+00:00")),
            created_at=datetime.fromisoformat(node["createdAt"].replace("Z", "+00:00")),
            language=language.get("name"),
            license=license_info.get("name"),
            topics=[t["topic"]["name"] for t in topics if t and t.get("topic")],
        )
