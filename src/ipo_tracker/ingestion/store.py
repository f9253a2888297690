"""Storage backend: Protocol definition, SQLite implementation, factory."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, date, datetime
from typing import Any, ClassVar, Protocol, runtime_checkable

import aiosqlite

from ipo_tracker.core.config import StorageConfig
from ipo_tracker.core.exceptions import StorageError
from ipo_tracker.core.models import (
    MUTABLE_FIELDS,
    AIAgent,
    AIAgentCategory,
    CanonicalStockRecord,
    CatalogKind,
    IpoStatus,
    IpoStock,
    Market,
    MarketSyncInfo,
    McpApp,
    McpCategory,
    PricingType,
    StockId,
    StorageBackend as StorageBackendEnum,
)

logger = logging.getLogger(__name__)

# Declaration order of IpoStatus; list views sort by it.
_STATUS_ORDER_SQL = (
    "CASE status WHEN 'UPCOMING' THEN 0 WHEN 'PRICING' THEN 1 "
    "WHEN 'LISTED' THEN 2 WHEN 'WITHDRAWN' THEN 3 WHEN 'POSTPONED' THEN 4 "
    "ELSE 5 END"
)

_AGENT_SORT_FIELDS = {
    "popularity_score", "rating", "users", "created_at", "last_updated", "name",
}
_MCP_SORT_FIELDS = {
    "popularity_score", "stars", "forks", "last_updated", "synced_at", "name",
}

# Columns a manual PUT may change on a stock (identity excluded).
PATCHABLE_FIELDS: frozenset[str] = frozenset(MUTABLE_FIELDS) | {
    "company_name",
    "underwriters",
}


@runtime_checkable
class IpoStockStore(Protocol):
    """Abstract storage interface for ipo-tracker data."""

    async def find_stock(self, symbol: str, market: Market) -> IpoStock | None: ...
    async def create_stock(self, record: CanonicalStockRecord) -> IpoStock: ...
    async def update_stock(
        self, stock_id: StockId, record: CanonicalStockRecord
    ) -> IpoStock: ...
    async def get_stock(self, stock_id: StockId) -> IpoStock | None: ...
    async def list_stocks(
        self,
        include_withdrawn: bool = False,
        market: Market | None = None,
        limit: int | None = None,
    ) -> list[IpoStock]: ...
    async def find_stock_by_symbol(self, symbol: str) -> IpoStock | None: ...
    async def save_stock(self, record: CanonicalStockRecord) -> IpoStock: ...
    async def patch_stock(
        self, stock_id: StockId, fields: dict[str, Any]
    ) -> IpoStock | None: ...
    async def delete_stock(self, stock_id: StockId) -> bool: ...
    async def get_market_stats(self) -> list[MarketSyncInfo]: ...
    async def upsert_ai_agent(self, agent: AIAgent) -> None: ...
    async def upsert_mcp_app(self, app: McpApp) -> None: ...
    async def list_ai_agents(
        self,
        search: str | None = None,
        category: AIAgentCategory | None = None,
        sort: str = "popularity_score",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[AIAgent], int]: ...
    async def list_mcp_apps(
        self,
        search: str | None = None,
        category: McpCategory | None = None,
        sort: str = "popularity_score",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[McpApp], int]: ...
    async def get_catalog_stats(self, kind: CatalogKind) -> dict[str, Any]: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


def _now() -> datetime:
    return datetime.now(UTC)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class SqliteStore:
    """SQLite implementation of the storage protocol.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS ipo_stocks (
                    id TEXT PRIMARY KEY,
                    symbol TEXT NOT NULL,
                    company_name TEXT NOT NULL,
                    market TEXT NOT NULL,
                    status TEXT NOT NULL,
                    expected_price REAL,
                    price_range TEXT,
                    shares_offered REAL,
                    ipo_date TEXT,
                    sector TEXT,
                    industry TEXT,
                    description TEXT,
                    website TEXT,
                    underwriters_json TEXT NOT NULL DEFAULT '[]',
                    market_cap REAL,
                    revenue REAL,
                    net_income REAL,
                    employees INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(symbol, market)
                )""",
                "CREATE INDEX IF NOT EXISTS idx_stocks_market ON ipo_stocks(market)",
                "CREATE INDEX IF NOT EXISTS idx_stocks_status ON ipo_stocks(status)",
                "CREATE INDEX IF NOT EXISTS idx_stocks_symbol ON ipo_stocks(symbol)",
            ],
        ),
        2: (
            "Repository catalogs",
            [
                """CREATE TABLE IF NOT EXISTS ai_agents (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    creator TEXT NOT NULL,
                    description TEXT,
                    category TEXT NOT NULL,
                    website TEXT,
                    users INTEGER NOT NULL DEFAULT 0,
                    rating REAL NOT NULL DEFAULT 0,
                    featured INTEGER NOT NULL DEFAULT 0,
                    capabilities_json TEXT NOT NULL DEFAULT '[]',
                    tags_json TEXT NOT NULL DEFAULT '[]',
                    verified INTEGER NOT NULL DEFAULT 0,
                    pricing TEXT NOT NULL,
                    popularity_score REAL NOT NULL DEFAULT 0,
                    last_updated TEXT NOT NULL,
                    synced_at TEXT NOT NULL,
                    created_at TEXT DEFAULT (datetime('now'))
                )""",
                """CREATE TABLE IF NOT EXISTS mcp_apps (
                    github_url TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    full_name TEXT NOT NULL,
                    author TEXT NOT NULL,
                    description TEXT,
                    category TEXT NOT NULL,
                    homepage TEXT,
                    stars INTEGER NOT NULL DEFAULT 0,
                    forks INTEGER NOT NULL DEFAULT 0,
                    issues INTEGER NOT NULL DEFAULT 0,
                    language TEXT,
                    license TEXT,
                    topics_json TEXT NOT NULL DEFAULT '[]',
                    is_official INTEGER NOT NULL DEFAULT 0,
                    popularity_score REAL NOT NULL DEFAULT 0,
                    last_updated TEXT NOT NULL,
                    repo_created_at TEXT NOT NULL,
                    synced_at TEXT NOT NULL
                )""",
                "CREATE INDEX IF NOT EXISTS idx_agents_category ON ai_agents(category)",
                "CREATE INDEX IF NOT EXISTS idx_agents_popularity ON ai_agents(popularity_score)",
                "CREATE INDEX IF NOT EXISTS idx_mcp_category ON mcp_apps(category)",
                "CREATE INDEX IF NOT EXISTS idx_mcp_popularity ON mcp_apps(popularity_score)",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    # --- Stock Operations ---

    async def find_stock(self, symbol: str, market: Market) -> IpoStock | None:
        try:
            async with self._db.execute(
                "SELECT * FROM ipo_stocks WHERE symbol = ? AND market = ?",
                (symbol, str(market)),
            ) as cursor:
                row = await cursor.fetchone()
            return self._row_to_stock(row) if row is not None else None
        except Exception as e:
            raise StorageError(
                f"Failed to find stock: {e}",
                context={
                    "operation": "query",
                    "table": "ipo_stocks",
                    "symbol": symbol,
                    "market": str(market),
                },
            ) from e

    async def create_stock(self, record: CanonicalStockRecord) -> IpoStock:
        """Insert a new stock. The (symbol, market) pair must not exist yet."""
        stock_id = uuid.uuid4().hex
        now = _now().isoformat()
        try:
            await self._db.execute(
                """INSERT INTO ipo_stocks
                   (id, symbol, company_name, market, status, expected_price,
                    price_range, shares_offered, ipo_date, sector, industry,
                    description, website, underwriters_json, market_cap,
                    revenue, net_income, employees, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    stock_id,
                    record.symbol,
                    record.company_name,
                    str(record.market),
                    str(record.status),
                    record.expected_price,
                    record.price_range,
                    record.shares_offered,
                    _iso(record.ipo_date),
                    record.sector,
                    record.industry,
                    record.description,
                    record.website,
                    json.dumps(record.underwriters),
                    record.market_cap,
                    record.revenue,
                    record.net_income,
                    record.employees,
                    now,
                    now,
                ),
            )
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to create stock: {e}",
                context={
                    "operation": "insert",
                    "table": "ipo_stocks",
                    "symbol": record.symbol,
                    "market": str(record.market),
                },
            ) from e
        return await self._require_stock(stock_id)

    async def save_stock(self, record: CanonicalStockRecord) -> IpoStock:
        """Manual create from the API. Same contract as create_stock."""
        return await self.create_stock(record)

    async def update_stock(
        self, stock_id: StockId, record: CanonicalStockRecord
    ) -> IpoStock:
        """Overwrite the allow-listed mutable fields and bump updated_at."""
        values = record.mutable_values()
        return await self._write_fields(stock_id, values, operation="update")

    async def patch_stock(
        self, stock_id: StockId, fields: dict[str, Any]
    ) -> IpoStock | None:
        """Apply a partial manual edit. Returns None when the id is unknown."""
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise StorageError(
                f"Fields cannot be edited: {sorted(unknown)}",
                context={"operation": "update", "table": "ipo_stocks", "id": stock_id},
            )
        if await self.get_stock(stock_id) is None:
            return None
        if not fields:
            return await self.get_stock(stock_id)
        return await self._write_fields(stock_id, fields, operation="patch")

    async def _write_fields(
        self, stock_id: StockId, fields: dict[str, Any], operation: str
    ) -> IpoStock:
        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if name == "underwriters":
                assignments.append("underwriters_json = ?")
                params.append(json.dumps(list(value or [])))
                continue
            assignments.append(f"{name} = ?")
            if isinstance(value, (date, datetime)):
                params.append(value.isoformat())
            elif value is not None and name in ("status", "market"):
                params.append(str(value))
            else:
                params.append(value)
        assignments.append("updated_at = ?")
        params.append(_now().isoformat())
        params.append(stock_id)

        try:
            cursor = await self._db.execute(
                f"UPDATE ipo_stocks SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
            if cursor.rowcount == 0:
                raise StorageError(
                    f"Stock not found: {stock_id}",
                    context={"operation": operation, "table": "ipo_stocks", "id": stock_id},
                )
            await self._db.commit()
        except Exception as e:
            if isinstance(e, StorageError):
                raise
            raise StorageError(
                f"Failed to update stock: {e}",
                context={"operation": operation, "table": "ipo_stocks", "id": stock_id},
            ) from e
        return await self._require_stock(stock_id)

    async def get_stock(self, stock_id: StockId) -> IpoStock | None:
        try:
            async with self._db.execute(
                "SELECT * FROM ipo_stocks WHERE id = ?", (stock_id,)
            ) as cursor:
                row = await cursor.fetchone()
            return self._row_to_stock(row) if row is not None else None
        except Exception as e:
            raise StorageError(
                f"Failed to get stock: {e}",
                context={"operation": "query", "table": "ipo_stocks", "id": stock_id},
            ) from e

    async def _require_stock(self, stock_id: StockId) -> IpoStock:
        stock = await self.get_stock(stock_id)
        if stock is None:
            raise StorageError(
                f"Stock vanished after write: {stock_id}",
                context={"operation": "query", "table": "ipo_stocks", "id": stock_id},
            )
        return stock

    async def list_stocks(
        self,
        include_withdrawn: bool = False,
        market: Market | None = None,
        limit: int | None = None,
    ) -> list[IpoStock]:
        """List stocks ordered by status, then newest IPO date, then newest row."""
        try:
            query = "SELECT * FROM ipo_stocks WHERE 1=1"
            params: list[Any] = []
            if not include_withdrawn:
                query += " AND status != ?"
                params.append(str(IpoStatus.WITHDRAWN))
            if market is not None:
                query += " AND market = ?"
                params.append(str(market))
            query += (
                f" ORDER BY {_STATUS_ORDER_SQL} ASC,"
                " ipo_date IS NULL, ipo_date DESC, created_at DESC"
            )
            if limit is not None:
                query += " LIMIT ?"
                params.append(limit)
            async with self._db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
            return [self._row_to_stock(r) for r in rows]
        except Exception as e:
            raise StorageError(
                f"Failed to list stocks: {e}",
                context={"operation": "query", "table": "ipo_stocks"},
            ) from e

    async def find_stock_by_symbol(self, symbol: str) -> IpoStock | None:
        """First non-withdrawn stock with this symbol in any market."""
        try:
            async with self._db.execute(
                """SELECT * FROM ipo_stocks
                   WHERE UPPER(symbol) = UPPER(?) AND status != ?
                   ORDER BY updated_at DESC LIMIT 1""",
                (symbol, str(IpoStatus.WITHDRAWN)),
            ) as cursor:
                row = await cursor.fetchone()
            return self._row_to_stock(row) if row is not None else None
        except Exception as e:
            raise StorageError(
                f"Failed to find stock by symbol: {e}",
                context={"operation": "query", "table": "ipo_stocks", "symbol": symbol},
            ) from e

    async def delete_stock(self, stock_id: StockId) -> bool:
        try:
            cursor = await self._db.execute(
                "DELETE FROM ipo_stocks WHERE id = ?", (stock_id,)
            )
            await self._db.commit()
            return cursor.rowcount > 0
        except Exception as e:
            raise StorageError(
                f"Failed to delete stock: {e}",
                context={"operation": "delete", "table": "ipo_stocks", "id": stock_id},
            ) from e

    async def get_market_stats(self) -> list[MarketSyncInfo]:
        """Stock count and most recent updated_at per market."""
        try:
            async with self._db.execute(
                """SELECT market, COUNT(*) AS count, MAX(updated_at) AS last_update
                   FROM ipo_stocks GROUP BY market ORDER BY market"""
            ) as cursor:
                rows = await cursor.fetchall()
            return [
                MarketSyncInfo(
                    market=Market(r["market"]),
                    count=r["count"],
                    last_update=(
                        datetime.fromisoformat(r["last_update"])
                        if r["last_update"]
                        else None
                    ),
                )
                for r in rows
            ]
        except Exception as e:
            raise StorageError(
                f"Failed to get market stats: {e}",
                context={"operation": "query", "table": "ipo_stocks"},
            ) from e

    # --- Catalog Operations ---

    async def upsert_ai_agent(self, agent: AIAgent) -> None:
        try:
            await self._db.execute(
                """INSERT INTO ai_agents
                   (id, name, creator, description, category, website, users,
                    rating, featured, capabilities_json, tags_json, verified,
                    pricing, popularity_score, last_updated, synced_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    creator = excluded.creator,
                    description = excluded.description,
                    category = excluded.category,
                    website = excluded.website,
                    users = excluded.users,
                    rating = excluded.rating,
                    featured = excluded.featured,
                    capabilities_json = excluded.capabilities_json,
                    tags_json = excluded.tags_json,
                    verified = excluded.verified,
                    pricing = excluded.pricing,
                    popularity_score = excluded.popularity_score,
                    last_updated = excluded.last_updated,
                    synced_at = excluded.synced_at""",
                (
                    agent.id,
                    agent.name,
                    agent.creator,
                    agent.description,
                    str(agent.category),
                    agent.website,
                    agent.users,
                    agent.rating,
                    int(agent.featured),
                    json.dumps(agent.capabilities),
                    json.dumps(agent.tags),
                    int(agent.verified),
                    str(agent.pricing),
                    agent.popularity_score,
                    agent.last_updated.isoformat(),
                    agent.synced_at.isoformat(),
                ),
            )
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to upsert AI agent: {e}",
                context={"operation": "upsert", "table": "ai_agents", "id": agent.id},
            ) from e

    async def upsert_mcp_app(self, app: McpApp) -> None:
        try:
            await self._db.execute(
                """INSERT INTO mcp_apps
                   (github_url, name, full_name, author, description, category,
                    homepage, stars, forks, issues, language, license,
                    topics_json, is_official, popularity_score, last_updated,
                    repo_created_at, synced_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(github_url) DO UPDATE SET
                    name = excluded.name,
                    full_name = excluded.full_name,
                    author = excluded.author,
                    description = excluded.description,
                    category = excluded.category,
                    homepage = excluded.homepage,
                    stars = excluded.stars,
                    forks = excluded.forks,
                    issues = excluded.issues,
                    language = excluded.language,
                    license = excluded.license,
                    topics_json = excluded.topics_json,
                    is_official = excluded.is_official,
                    popularity_score = excluded.popularity_score,
                    last_updated = excluded.last_updated,
                    synced_at = excluded.synced_at""",
                (
                    app.github_url,
                    app.name,
                    app.full_name,
                    app.author,
                    app.description,
                    str(app.category),
                    app.homepage,
                    app.stars,
                    app.forks,
                    app.issues,
                    app.language,
                    app.license,
                    json.dumps(app.topics),
                    int(app.is_official),
                    app.popularity_score,
                    app.last_updated.isoformat(),
                    app.created_at.isoformat(),
                    app.synced_at.isoformat(),
                ),
            )
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to upsert MCP app: {e}",
                context={
                    "operation": "upsert",
                    "table": "mcp_apps",
                    "github_url": app.github_url,
                },
            ) from e

    async def list_ai_agents(
        self,
        search: str | None = None,
        category: AIAgentCategory | None = None,
        sort: str = "popularity_score",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[AIAgent], int]:
        """Page through AI agents. Returns (page, total matching)."""
        where, params = self._catalog_filter(
            search, category, ("name", "description", "creator", "tags_json")
        )
        order = sort if sort in _AGENT_SORT_FIELDS else "popularity_score"
        rows, total = await self._page(
            "ai_agents", where, params, order, descending, limit, offset
        )
        return [self._row_to_agent(r) for r in rows], total

    async def list_mcp_apps(
        self,
        search: str | None = None,
        category: McpCategory | None = None,
        sort: str = "popularity_score",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[McpApp], int]:
        """Page through MCP apps. Returns (page, total matching)."""
        where, params = self._catalog_filter(
            search, category, ("name", "description", "author", "topics_json")
        )
        order = sort if sort in _MCP_SORT_FIELDS else "popularity_score"
        rows, total = await self._page(
            "mcp_apps", where, params, order, descending, limit, offset
        )
        return [self._row_to_mcp_app(r) for r in rows], total

    async def get_catalog_stats(self, kind: CatalogKind) -> dict[str, Any]:
        """Total rows, per-category counts and latest sync time for a catalog."""
        table = "ai_agents" if kind == CatalogKind.AI_AGENTS else "mcp_apps"
        try:
            async with self._db.execute(
                f"SELECT COUNT(*), MAX(synced_at) FROM {table}"
            ) as cursor:
                total, last_sync = await cursor.fetchone()
            async with self._db.execute(
                f"SELECT category, COUNT(*) AS n FROM {table} "
                "GROUP BY category ORDER BY n DESC"
            ) as cursor:
                by_category = {r["category"]: r["n"] for r in await cursor.fetchall()}
        except Exception as e:
            raise StorageError(
                f"Failed to get catalog stats: {e}",
                context={"operation": "query", "table": table},
            ) from e
        return {
            "total": total,
            "by_category": by_category,
            "last_sync": last_sync,
        }

    @staticmethod
    def _catalog_filter(
        search: str | None,
        category: str | None,
        search_columns: tuple[str, ...],
    ) -> tuple[str, list[Any]]:
        where = "WHERE 1=1"
        params: list[Any] = []
        if category is not None:
            where += " AND category = ?"
            params.append(str(category))
        if search:
            like = f"%{search.lower()}%"
            where += " AND (" + " OR ".join(
                f"LOWER({col}) LIKE ?" for col in search_columns
            ) + ")"
            params.extend([like] * len(search_columns))
        return where, params

    async def _page(
        self,
        table: str,
        where: str,
        params: list[Any],
        order: str,
        descending: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[aiosqlite.Row], int]:
        direction = "DESC" if descending else "ASC"
        try:
            async with self._db.execute(
                f"SELECT COUNT(*) FROM {table} {where}", params
            ) as cursor:
                (total,) = await cursor.fetchone()
            async with self._db.execute(
                f"SELECT * FROM {table} {where} ORDER BY {order} {direction} "
                "LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ) as cursor:
                rows = await cursor.fetchall()
            return list(rows), total
        except Exception as e:
            raise StorageError(
                f"Failed to list {table}: {e}",
                context={"operation": "query", "table": table},
            ) from e

    # --- Row Converters ---

    @staticmethod
    def _row_to_stock(row: aiosqlite.Row) -> IpoStock:
        return IpoStock(
            id=row["id"],
            symbol=row["symbol"],
            company_name=row["company_name"],
            market=Market(row["market"]),
            status=IpoStatus(row["status"]),
            expected_price=row["expected_price"],
            price_range=row["price_range"],
            shares_offered=row["shares_offered"],
            ipo_date=date.fromisoformat(row["ipo_date"]) if row["ipo_date"] else None,
            sector=row["sector"],
            industry=row["industry"],
            description=row["description"],
            website=row["website"],
            underwriters=json.loads(row["underwriters_json"] or "[]"),
            market_cap=row["market_cap"],
            revenue=row["revenue"],
            net_income=row["net_income"],
            employees=row["employees"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _row_to_agent(row: aiosqlite.Row) -> AIAgent:
        return AIAgent(
            id=row["id"],
            name=row["name"],
            creator=row["creator"],
            description=row["description"],
            category=AIAgentCategory(row["category"]),
            website=row["website"],
            users=row["users"],
            rating=row["rating"],
            featured=bool(row["featured"]),
            capabilities=json.loads(row["capabilities_json"] or "[]"),
            tags=json.loads(row["tags_json"] or "[]"),
            verified=bool(row["verified"]),
            pricing=PricingType(row["pricing"]),
            popularity_score=row["popularity_score"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
            synced_at=datetime.fromisoformat(row["synced_at"]),
        )

    @staticmethod
    def _row_to_mcp_app(row: aiosqlite.Row) -> McpApp:
        return McpApp(
            github_url=row["github_url"],
            name=row["name"],
            full_name=row["full_name"],
            author=row["author"],
            description=row["description"],
            category=McpCategory(row["category"]),
            homepage=row["homepage"],
            stars=row["stars"],
            forks=row["forks"],
            issues=row["issues"],
            language=row["language"],
            license=row["license"],
            topics=json.loads(row["topics_json"] or "[]"),
            is_official=bool(row["is_official"]),
            popularity_score=row["popularity_score"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
            created_at=datetime.fromisoformat(row["repo_created_at"]),
            synced_at=datetime.fromisoformat(row["synced_at"]),
        )


async def create_store(config: StorageConfig) -> SqliteStore:
    """Create and initialize a storage backend based on configuration."""
    if config.backend == StorageBackendEnum.SQLITE:
        store = SqliteStore(config)
        await store.initialize()
        return store
    raise StorageError(
        f"Unsupported storage backend: {config.backend}",
        context={"operation": "create_store", "backend": str(config.backend)},
    )
