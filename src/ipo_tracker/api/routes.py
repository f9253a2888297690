"""FastAPI route definitions for the IPO Tracker API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

import ipo_tracker
from ipo_tracker.api.deps import (
    AppState,
    get_app_state,
    get_config,
    get_market_data,
    get_sec_client,
    get_store,
    get_sync_service,
)
from ipo_tracker.api.schemas import (
    Envelope,
    ErrorResponse,
    FilingAnalysisRequest,
    HealthResponse,
    MarketAnalysisRequest,
    Pagination,
    ProspectusAnalysisRequest,
    StockAnalysisRequest,
    StockCreateRequest,
    StockUpdateRequest,
)
from ipo_tracker.core.config import TrackerConfig
from ipo_tracker.core.exceptions import SourceError
from ipo_tracker.core.models import (
    AIAgentCategory,
    CanonicalStockRecord,
    CatalogKind,
    LLMProvider,
    Market,
    McpCategory,
    SyncResult,
)
from ipo_tracker.ingestion.finnhub import NEWS_CATEGORIES, FinnhubClient
from ipo_tracker.ingestion.sec import SecFilingsClient
from ipo_tracker.ingestion.store import SqliteStore
from ipo_tracker.ingestion.sync import IpoDataSyncService

logger = logging.getLogger(__name__)

router = APIRouter()

MARKET_ANALYSIS_SAMPLE = 50

_NOT_FOUND = {404: {"model": ErrorResponse}}


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _results_payload(results: dict[Market, SyncResult]) -> dict[str, SyncResult]:
    return {market.value.lower(): result for market, result in results.items()}


def _source_sync_response(result: SyncResult, label: str) -> Envelope | JSONResponse:
    if result.success:
        return Envelope(data=result, message=f"{label} IPO sync completed")
    return JSONResponse(
        content=jsonable_encoder({
            "success": False,
            "error": f"{label} IPO sync failed",
            "details": result.errors,
            "data": result,
            "message": f"{label} IPO sync failed",
        }),
    )


def _raise_not_found(e: SourceError) -> None:
    """Upstream "no such thing" becomes our 404; anything else propagates."""
    if e.context.get("status_code") == 404:
        raise HTTPException(status_code=404, detail=str(e)) from e


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: SqliteStore = Depends(get_store),
    config: TrackerConfig = Depends(get_config),
):
    """System health and basic statistics."""
    healthy = await store.health_check()
    stats = await store.get_market_stats() if healthy else []
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version=ipo_tracker.__version__,
        storage_backend=str(config.storage.backend.value),
        database=healthy,
        total_stocks=sum(s.count for s in stats),
    )


# -- Stocks --


@router.get("/stocks", response_model=Envelope)
async def list_stocks(
    market: Market | None = Query(None),
    include_withdrawn: bool = Query(False),
    store: SqliteStore = Depends(get_store),
):
    """Tracked IPOs, withdrawn ones hidden unless asked for."""
    stocks = await store.list_stocks(include_withdrawn=include_withdrawn, market=market)
    return Envelope(data=stocks, message=f"{len(stocks)} stocks")


@router.post("/stocks", response_model=Envelope, status_code=201)
async def create_stock(
    body: StockCreateRequest,
    store: SqliteStore = Depends(get_store),
):
    """Manually add an IPO."""
    if await store.find_stock(body.symbol, body.market) is not None:
        raise HTTPException(
            status_code=409,
            detail=f"Stock {body.symbol} already exists in {body.market}",
        )
    stock = await store.save_stock(CanonicalStockRecord(**body.model_dump()))
    return Envelope(data=stock, message="Stock created")


@router.get("/stocks/{stock_id}", response_model=Envelope, responses=_NOT_FOUND)
async def get_stock(stock_id: str, store: SqliteStore = Depends(get_store)):
    stock = await store.get_stock(stock_id)
    if stock is None:
        raise HTTPException(status_code=404, detail=f"Stock not found: {stock_id}")
    return Envelope(data=stock)


@router.put("/stocks/{stock_id}", response_model=Envelope, responses=_NOT_FOUND)
async def update_stock(
    stock_id: str,
    body: StockUpdateRequest,
    store: SqliteStore = Depends(get_store),
):
    """Edit the fields present in the body."""
    stock = await store.patch_stock(stock_id, body.model_dump(exclude_unset=True))
    if stock is None:
        raise HTTPException(status_code=404, detail=f"Stock not found: {stock_id}")
    return Envelope(data=stock, message="Stock updated")


@router.delete("/stocks/{stock_id}", response_model=Envelope, responses=_NOT_FOUND)
async def delete_stock(stock_id: str, store: SqliteStore = Depends(get_store)):
    if not await store.delete_stock(stock_id):
        raise HTTPException(status_code=404, detail=f"Stock not found: {stock_id}")
    return Envelope(message="Stock deleted")


@router.get("/stocks/{symbol}/metrics", response_model=Envelope, responses=_NOT_FOUND)
async def stock_metrics(
    symbol: str,
    metric: str = Query("all", min_length=1),
    finnhub: FinnhubClient = Depends(get_market_data),
):
    """Finnhub basic financials (valuation, margins, 52-week range) for a listed symbol."""
    try:
        financials = await finnhub.get_basic_financials(symbol, metric=metric)
    except SourceError as e:
        _raise_not_found(e)
        raise
    return Envelope(data=financials)


# -- Market data --


@router.get("/news", response_model=Envelope)
async def market_news(
    category: str = Query("general", pattern=f"^({'|'.join(NEWS_CATEGORIES)})$"),
    limit: int = Query(10, ge=1, le=50),
    finnhub: FinnhubClient = Depends(get_market_data),
):
    news = await finnhub.get_market_news(category=category, limit=limit)
    return Envelope(data=news, message=f"{len(news)} {category} headlines")


@router.get("/market-holidays", response_model=Envelope)
async def market_holidays(
    exchange: str = Query("US", min_length=1, max_length=10),
    finnhub: FinnhubClient = Depends(get_market_data),
):
    """Up to ten upcoming holidays for an exchange, soonest first."""
    exchange = exchange.strip().upper()
    holidays = await finnhub.get_market_holidays(exchange)
    return Envelope(data={"exchange": exchange, "holidays": holidays})


# -- Sync --


@router.get("/sync", response_model=Envelope)
async def get_sync_info(service: IpoDataSyncService = Depends(get_sync_service)):
    """Per-market stock count and last update time."""
    info = await service.get_last_sync_info()
    return Envelope(data=info, message="Sync status retrieved successfully")


@router.post("/sync", response_model=Envelope)
async def sync_all(service: IpoDataSyncService = Depends(get_sync_service)):
    """Sync every source concurrently."""
    results = await service.sync_all_data()
    logger.info(
        "Manual sync completed: %s",
        {m: (r.added, r.updated, r.skipped, len(r.errors)) for m, r in results.items()},
    )
    return Envelope(data=_results_payload(results), message="Data synchronization completed")


@router.get("/sync/finnhub", response_model=Envelope)
async def get_finnhub_info(service: IpoDataSyncService = Depends(get_sync_service)):
    info = [i for i in await service.get_last_sync_info() if i.market == Market.US]
    return Envelope(data=info[0] if info else None, message="US sync status")


@router.post("/sync/finnhub", response_model=Envelope)
async def sync_finnhub(service: IpoDataSyncService = Depends(get_sync_service)):
    result = await service.sync_us_ipos()
    return _source_sync_response(result, "US")


@router.get("/sync/hkex", response_model=Envelope)
async def get_hkex_info(service: IpoDataSyncService = Depends(get_sync_service)):
    info = [i for i in await service.get_last_sync_info() if i.market == Market.HK]
    return Envelope(data=info[0] if info else None, message="HK sync status")


@router.post("/sync/hkex", response_model=Envelope)
async def sync_hkex(service: IpoDataSyncService = Depends(get_sync_service)):
    result = await service.sync_hk_ipos()
    return _source_sync_response(result, "HK")


@router.post("/sync/scheduled")
async def scheduled_sync(
    request: Request,
    config: TrackerConfig = Depends(get_config),
    service: IpoDataSyncService = Depends(get_sync_service),
):
    """Entry point for an external cron. Bearer-authenticated when a secret is set."""
    secret = config.api.cron_secret
    if secret and request.headers.get("Authorization") != f"Bearer {secret}":
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": "Unauthorized", "details": None},
        )

    results = await service.sync_all_data()
    failed = {m.value: r.errors for m, r in results.items() if not r.success}
    logger.info(
        "Scheduled IPO sync completed at %s, failed sources: %s",
        _timestamp(), sorted(failed) or "none",
    )
    if failed:
        return JSONResponse(
            content=jsonable_encoder({
                "success": False,
                "error": "Scheduled sync failed for " + ", ".join(sorted(failed)),
                "details": failed,
                "data": _results_payload(results),
                "message": "Scheduled sync completed with failures",
                "timestamp": _timestamp(),
            }),
        )
    return {
        "success": True,
        "data": _results_payload(results),
        "message": "Scheduled sync completed successfully",
        "timestamp": _timestamp(),
    }


@router.get("/sync/scheduled")
async def scheduled_sync_health():
    return {
        "success": True,
        "data": {"status": "healthy"},
        "message": "Scheduled sync endpoint is available",
        "timestamp": _timestamp(),
    }


# -- Analysis --


@router.post("/analysis/stock", response_model=Envelope)
async def analyze_stock(
    body: StockAnalysisRequest,
    state: AppState = Depends(get_app_state),
):
    """AI analysis of one IPO. Unknown symbols are analyzed from the symbol alone."""
    symbol = body.symbol.strip().upper()
    stock = await state.store.find_stock_by_symbol(symbol)
    target = stock or CanonicalStockRecord(symbol=symbol, company_name=symbol)

    analyst = state.analyst_factory(body.provider)
    analysis = await analyst.analyze_stock(target)
    return Envelope(data=analysis, message=f"Analysis by {analyst.provider_name}")


@router.post("/analysis/market", response_model=Envelope)
async def analyze_market(
    body: MarketAnalysisRequest,
    state: AppState = Depends(get_app_state),
):
    stocks = await state.store.list_stocks(
        market=body.market, limit=MARKET_ANALYSIS_SAMPLE
    )
    if not stocks:
        raise HTTPException(status_code=404, detail="No IPO data available for analysis")

    analyst = state.analyst_factory(body.provider)
    analysis = await analyst.analyze_market(stocks)
    return Envelope(data=analysis, message=f"Analysis by {analyst.provider_name}")


@router.post("/analysis/filing", response_model=Envelope)
async def analyze_filing(
    body: FilingAnalysisRequest,
    state: AppState = Depends(get_app_state),
):
    analyst = state.analyst_factory(body.provider)
    analysis = await analyst.analyze_filing(
        ticker=body.ticker.upper() if body.ticker else None,
        company_name=body.company_name,
        form_type=body.form_type,
        content=body.content,
    )
    return Envelope(data=analysis, message=f"Analysis by {analyst.provider_name}")


@router.post("/analysis/prospectus", response_model=Envelope)
async def analyze_prospectus(
    body: ProspectusAnalysisRequest,
    state: AppState = Depends(get_app_state),
):
    analyst = state.analyst_factory(body.provider)
    analysis = await analyst.analyze_prospectus(body.company_name, body.text)
    return Envelope(data=analysis, message=f"Analysis by {analyst.provider_name}")


@router.post("/analysis/filing/{accession_no}", response_model=Envelope, responses=_NOT_FOUND)
async def analyze_fetched_filing(
    accession_no: str,
    provider: LLMProvider | None = Query(None),
    state: AppState = Depends(get_app_state),
):
    """Look up a filing, download it from EDGAR and analyze it."""
    try:
        filing = await state.sec_client.get_filing(accession_no)
    except SourceError as e:
        _raise_not_found(e)
        raise
    content = await state.sec_client.get_filing_content(filing)

    analyst = state.analyst_factory(provider)
    analysis = await analyst.analyze_filing(
        ticker=filing.ticker,
        company_name=filing.company_name,
        form_type=filing.form_type,
        content=content,
    )
    return Envelope(
        data={"filing": filing, "analysis": analysis, "content_length": len(content)},
        message=f"Analysis by {analyst.provider_name}",
    )


# -- SEC filings --


@router.get("/sec/filings", response_model=Envelope)
async def search_sec_filings(
    ticker: str = Query(..., min_length=1),
    form_type: str | None = Query(None),
    start: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=50),
    config: TrackerConfig = Depends(get_config),
    sec: SecFilingsClient = Depends(get_sec_client),
):
    """Filings for a ticker, newest first. Defaults to the configured form type."""
    filings, total = await sec.search_filings(
        ticker=ticker,
        form_type=form_type or config.sec.default_form_type,
        start=start,
        size=size,
    )
    return Envelope(data={"filings": filings, "total": total}, message=f"{total} filings")


@router.get("/sec/companies/{ticker}/filings", response_model=Envelope)
async def company_filings(
    ticker: str,
    form_types: list[str] = Query(["10-K", "10-Q"]),
    limit: int = Query(10, ge=1, le=50),
    sec: SecFilingsClient = Depends(get_sec_client),
):
    """Latest filings across several form types, merged by filing date."""
    filings = await sec.get_company_filings(ticker, tuple(form_types), limit=limit)
    return Envelope(data={"ticker": ticker.upper(), "filings": filings, "total": len(filings)})


# -- Repository catalogs --


@router.get("/catalog/{kind}", response_model=Envelope)
async def list_catalog(
    kind: CatalogKind,
    search: str | None = Query(None),
    category: str | None = Query(None),
    sort: str = Query("popularity_score"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: SqliteStore = Depends(get_store),
):
    """Page through a catalog. Unknown categories and "ALL" mean no filter."""
    offset = (page - 1) * limit
    descending = order == "desc"

    if kind == CatalogKind.AI_AGENTS:
        agent_category = (
            AIAgentCategory(category) if category in AIAgentCategory.__members__ else None
        )
        items, total = await store.list_ai_agents(
            search=search, category=agent_category, sort=sort,
            descending=descending, limit=limit, offset=offset,
        )
    else:
        mcp_category = McpCategory(category) if category in McpCategory.__members__ else None
        items, total = await store.list_mcp_apps(
            search=search, category=mcp_category, sort=sort,
            descending=descending, limit=limit, offset=offset,
        )

    return Envelope(
        data={"items": items, "pagination": Pagination.build(page, limit, total)},
    )


@router.get("/catalog/{kind}/stats", response_model=Envelope)
async def catalog_stats(kind: CatalogKind, store: SqliteStore = Depends(get_store)):
    return Envelope(data=await store.get_catalog_stats(kind))


@router.post("/catalog/{kind}/sync", response_model=Envelope)
async def sync_catalog(kind: CatalogKind, state: AppState = Depends(get_app_state)):
    """Search GitHub and refresh one catalog."""
    sync = state.catalog_sync_factory(kind)
    try:
        result = await sync.sync_all()
    finally:
        await sync.close()
    return Envelope(
        data=result,
        message=f"Synced {result.total_synced} repositories across {result.queries} queries",
    )
