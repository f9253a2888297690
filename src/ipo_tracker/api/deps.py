"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse

from ipo_tracker.analyzers.llm import IpoAnalyst
from ipo_tracker.catalog.sync import CatalogSync
from ipo_tracker.core.config import TrackerConfig
from ipo_tracker.core.models import CatalogKind, LLMProvider
from ipo_tracker.ingestion.finnhub import FinnhubClient
from ipo_tracker.ingestion.sec import SecFilingsClient
from ipo_tracker.ingestion.store import SqliteStore
from ipo_tracker.ingestion.sync import IpoDataSyncService

AnalystFactory = Callable[[LLMProvider | None], IpoAnalyst]
CatalogSyncFactory = Callable[[CatalogKind], CatalogSync]


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: TrackerConfig
    store: SqliteStore
    sync_service: IpoDataSyncService
    analyst_factory: AnalystFactory
    catalog_sync_factory: CatalogSyncFactory
    sec_client: SecFilingsClient


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_config(request: Request) -> TrackerConfig:
    """Dependency: retrieve config."""
    return request.app.state.app_state.config


def get_store(request: Request) -> SqliteStore:
    """Dependency: retrieve storage backend."""
    return request.app.state.app_state.store


def get_sync_service(request: Request) -> IpoDataSyncService:
    return request.app.state.app_state.sync_service


def get_market_data(request: Request) -> FinnhubClient:
    return request.app.state.app_state.sync_service.finnhub


def get_sec_client(request: Request) -> SecFilingsClient:
    return request.app.state.app_state.sec_client


# Scheduled sync authenticates with its own bearer secret.
EXEMPT_PATHS = {"/api/health", "/api/sync/scheduled"}


async def api_key_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: validate X-API-Key header when authentication is enabled."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    config = request.app.state.app_state.config
    if config.api.api_key:
        api_key = request.headers.get("X-API-Key")
        if api_key != config.api.api_key:
            return JSONResponse(
                status_code=401,
                content={
                    "success": False,
                    "error": "Unauthorized",
                    "details": "Invalid or missing API key",
                },
            )
    return await call_next(request)
