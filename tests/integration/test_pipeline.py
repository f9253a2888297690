"""Integration tests: sync pipelines against a file-backed SQLite store."""

from __future__ import annotations

import json
from datetime import date, timedelta

import httpx
import pytest
import respx

from ipo_tracker.catalog.github import GitHubClient
from ipo_tracker.catalog.sync import CatalogSync
from ipo_tracker.core.models import CatalogKind, IpoStatus, Market
from ipo_tracker.ingestion.store import SqliteStore, create_store
from ipo_tracker.ingestion.sync import create_sync_service

FINNHUB_URL = "https://finnhub.io/api/v1/calendar/ipo"
HKEX_TOKEN_URL = "https://api.hkex.com.hk/fini/oauth/token"
HKEX_LISTINGS_URL = "https://api.hkex.com.hk/fini/ipo/listings"
GRAPHQL_URL = "https://api.github.com/graphql"

pytestmark = pytest.mark.integration


def _mock_hkex(listings: list[dict]) -> None:
    respx.post(HKEX_TOKEN_URL).mock(
        return_value=httpx.Response(200, json={"access_token": "hk-tok", "expires_in": 3600})
    )
    respx.get(HKEX_LISTINGS_URL).mock(
        return_value=httpx.Response(200, json={"listings": listings})
    )


def _node(name: str, description: str, stars: int = 120) -> dict:
    return {
        "name": name,
        "nameWithOwner": f"acme/{name}",
        "description": description,
        "url": f"https://github.com/acme/{name}",
        "homepageUrl": None,
        "stargazerCount": stars,
        "forkCount": 9,
        "issues": {"totalCount": 2},
        "updatedAt": "2025-06-01T00:00:00Z",
        "createdAt": "2024-06-01T00:00:00Z",
        "primaryLanguage": {"name": "Python"},
        "licenseInfo": {"name": "MIT License"},
        "repositoryTopics": {"nodes": []},
        "owner": {"login": "acme"},
    }


def _graphql_handler(nodes: list[dict]):
    """Answer search queries with one page of nodes and readme queries with nothing."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if "search(" in body["query"]:
            return httpx.Response(
                200,
                json={
                    "data": {
                        "search": {
                            "nodes": nodes,
                            "pageInfo": {"hasNextPage": False, "endCursor": None},
                        }
                    }
                },
            )
        return httpx.Response(200, json={"data": {"repository": {"readme": None}}})

    return handler


class TestIpoSyncPipeline:
    @respx.mock
    async def test_full_sync_persists(self, integration_config, finnhub_calendar, hkex_listings):
        respx.get(FINNHUB_URL).mock(
            return_value=httpx.Response(200, json={"ipoCalendar": finnhub_calendar})
        )
        _mock_hkex(hkex_listings)

        store = await create_store(integration_config.storage)
        service = create_sync_service(integration_config, store)
        try:
            results = await service.sync_all_data()
        finally:
            await service.close()
            await store.close()

        assert results[Market.US].success is True
        assert results[Market.US].processed == 4
        assert results[Market.US].added == 3
        assert results[Market.US].skipped == 1
        assert results[Market.HK].added == 2

        reopened = await create_store(integration_config.storage)
        try:
            visible = await reopened.list_stocks()
            stats = await reopened.get_market_stats()
        finally:
            await reopened.close()

        assert {(s.symbol, s.market) for s in visible} == {
            ("ACME", Market.US),
            ("BOLT", Market.US),
            ("OLDCO", Market.US),
            ("2599", Market.HK),
            ("9988", Market.HK),
        }
        assert {i.market: i.count for i in stats} == {Market.US: 3, Market.HK: 2}

    @respx.mock
    async def test_resync_updates_only_changes(
        self, integration_config, integration_store: SqliteStore, finnhub_entry, hkex_listings
    ):
        soon = (date.today() + timedelta(days=10)).isoformat()
        respx.get(FINNHUB_URL).mock(
            side_effect=[
                httpx.Response(200, json={"ipoCalendar": [finnhub_entry(date=soon)]}),
                httpx.Response(
                    200,
                    json={"ipoCalendar": [finnhub_entry(date=soon, status="priced", price="14.00")]},
                ),
            ]
        )
        _mock_hkex(hkex_listings)

        service = create_sync_service(integration_config, integration_store)
        try:
            await service.sync_all_data()
            results = await service.sync_all_data()
        finally:
            await service.close()

        assert (results[Market.US].updated, results[Market.US].skipped) == (1, 0)
        assert (results[Market.HK].updated, results[Market.HK].skipped) == (0, 2)

        stock = await integration_store.find_stock("ACME", Market.US)
        assert stock.status == IpoStatus.PRICING
        assert stock.expected_price == 14.0

    @respx.mock
    async def test_one_source_down(self, integration_config, integration_store, finnhub_calendar):
        respx.get(FINNHUB_URL).mock(
            return_value=httpx.Response(200, json={"ipoCalendar": finnhub_calendar})
        )
        respx.post(HKEX_TOKEN_URL).mock(return_value=httpx.Response(503))

        service = create_sync_service(integration_config, integration_store)
        try:
            results = await service.sync_all_data()
        finally:
            await service.close()

        assert results[Market.US].success is True
        assert results[Market.HK].success is False
        assert all(s.market == Market.US for s in await integration_store.list_stocks())


class TestCatalogPipeline:
    @respx.mock
    async def test_mcp_catalog(self, integration_config, integration_store):
        respx.post(GRAPHQL_URL).mock(
            side_effect=_graphql_handler([
                _node("mcp-server-postgres", "MCP server for PostgreSQL"),
                _node("mcp-server-git", "MCP server for git", stars=900),
                _node("dotfiles", "My shell setup"),
            ])
        )

        job = CatalogSync(
            CatalogKind.MCP,
            GitHubClient(integration_config.github),
            integration_store,
            queries=("topic:mcp",),
        )
        try:
            result = await job.sync_all()
        finally:
            await job.close()

        assert result.total_synced == 2
        assert result.skipped == 1
        apps, total = await integration_store.list_mcp_apps(sort="stars")
        assert total == 2
        assert [a.name for a in apps] == ["mcp-server-git", "mcp-server-postgres"]

        stats = await integration_store.get_catalog_stats(CatalogKind.MCP)
        assert stats["by_category"] == {"DEVELOPMENT": 1, "DATABASE": 1}
