"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ipo_tracker.analyzers.llm import create_analyst
from ipo_tracker.api.deps import (
    AnalystFactory,
    AppState,
    CatalogSyncFactory,
    api_key_middleware,
)
from ipo_tracker.api.routes import router
from ipo_tracker.catalog.sync import create_catalog_sync
from ipo_tracker.core.config import TrackerConfig, load_config
from ipo_tracker.core.exceptions import (
    AnalysisError,
    ConfigError,
    IpoTrackerError,
    RecordError,
    SourceError,
)
from ipo_tracker.ingestion.sec import SecFilingsClient
from ipo_tracker.ingestion.store import create_store
from ipo_tracker.ingestion.sync import create_sync_service

logger = logging.getLogger(__name__)

# Checked in order; the first matching base class wins.
_STATUS_MAP: tuple[tuple[type[IpoTrackerError], int], ...] = (
    (ConfigError, 400),
    (RecordError, 422),
    (SourceError, 502),
    (AnalysisError, 502),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config: TrackerConfig = app.state._pending_config or load_config()
    store = await create_store(config.storage)
    sync_service = create_sync_service(config, store)
    sec_client = SecFilingsClient(config.sec, timeout=config.sync.request_timeout)

    analyst_factory: AnalystFactory = app.state._pending_analyst_factory or (
        lambda provider: create_analyst(config.llm, provider)
    )
    catalog_sync_factory: CatalogSyncFactory = app.state._pending_catalog_factory or (
        lambda kind: create_catalog_sync(kind, config.github, store)
    )

    app.state.app_state = AppState(
        config=config,
        store=store,
        sync_service=sync_service,
        analyst_factory=analyst_factory,
        catalog_sync_factory=catalog_sync_factory,
        sec_client=sec_client,
    )

    yield

    await sec_client.close()
    await sync_service.close()
    await store.close()


def create_app(
    config: TrackerConfig | None = None,
    analyst_factory: AnalystFactory | None = None,
    catalog_sync_factory: CatalogSyncFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    import ipo_tracker

    app = FastAPI(
        title="IPO Tracker API",
        description="US and HK IPO calendar sync, analysis and repository catalogs",
        version=ipo_tracker.__version__,
        lifespan=lifespan,
    )

    # Stash overrides so lifespan can retrieve them
    app.state._pending_config = config
    app.state._pending_analyst_factory = analyst_factory
    app.state._pending_catalog_factory = catalog_sync_factory

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Optional API key middleware
    if config and config.api.api_key:
        app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    _register_exception_handlers(app)
    return app


def _error_response(status_code: int, error: str, details: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": False, "error": error, "details": details}),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Every handled failure answers with {success: false, error, details}."""

    @app.exception_handler(IpoTrackerError)
    async def tracker_exception_handler(request: Request, exc: IpoTrackerError):
        status = next(
            (code for exc_type, code in _STATUS_MAP if isinstance(exc, exc_type)),
            500,
        )
        if status >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return _error_response(status, type(exc).__name__, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        try:
            reason = HTTPStatus(exc.status_code).phrase
        except ValueError:
            reason = "HTTP Error"
        response = _error_response(exc.status_code, reason, exc.detail)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(422, "Validation Error", exc.errors())
