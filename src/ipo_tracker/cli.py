"""Click-based CLI for ipo-tracker.

Thin wrapper around library modules. Every operation delegates to the
ingestion, analyzers, or catalog modules.
"""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from ipo_tracker.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


async def _create_store_async(config):
    """Create and initialize storage from config."""
    from ipo_tracker.ingestion import create_store

    return await create_store(config.storage)


def _print_sync_result(label: str, result) -> None:
    colour = "green" if result.success else "red"
    console.print(
        f"[{colour}]{label}[/{colour}]: processed={result.processed} "
        f"added={result.added} updated={result.updated} skipped={result.skipped} "
        f"errors={len(result.errors)}"
    )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="IPO_TRACKER_CONFIG",
    default=None,
    help="Path to ipo-tracker.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="ipo-tracker")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """IPO Tracker: US and HK IPO calendar sync with AI analysis."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# sync
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--source",
    "-s",
    type=click.Choice(["all", "us", "hk"], case_sensitive=False),
    default="all",
    help="Which upstream calendar to sync.",
)
@click.pass_context
def sync(ctx: click.Context, source: str) -> None:
    """Pull IPO calendars and reconcile them into storage."""
    config = _load_config(ctx)

    async def _run():
        from ipo_tracker.core.models import Market
        from ipo_tracker.ingestion import create_sync_service

        store = await _create_store_async(config)
        service = create_sync_service(config, store)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task("Syncing IPO calendars...", total=None)
                source_l = source.lower()
                if source_l == "us":
                    results = {Market.US: await service.sync_us_ipos()}
                elif source_l == "hk":
                    results = {Market.HK: await service.sync_hk_ipos()}
                else:
                    results = await service.sync_all_data()
        finally:
            await service.close()
            await store.close()

        for market, result in results.items():
            _print_sync_result(f"{market} IPOs", result)
            if ctx.obj["verbose"]:
                for error in result.errors:
                    console.print(f"  [yellow]{error}[/yellow]")

        if not all(r.success for r in results.values()):
            raise SystemExit(1)

    _run_async(_run())


# ---------------------------------------------------------------------------
# stocks
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--market",
    "-m",
    type=click.Choice(["US", "HK"], case_sensitive=False),
    default=None,
    help="Only show one market.",
)
@click.option(
    "--include-withdrawn",
    is_flag=True,
    default=False,
    help="Show withdrawn IPOs too.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def stocks(
    ctx: click.Context,
    market: str | None,
    include_withdrawn: bool,
    output_format: str,
) -> None:
    """List tracked IPOs."""
    config = _load_config(ctx)

    async def _run():
        from ipo_tracker.core.models import Market

        store = await _create_store_async(config)
        try:
            return await store.list_stocks(
                include_withdrawn=include_withdrawn,
                market=Market(market.upper()) if market else None,
            )
        finally:
            await store.close()

    rows = _run_async(_run())

    if output_format == "json":
        click.echo(json.dumps([s.model_dump(mode="json") for s in rows], indent=2))
        return

    if not rows:
        console.print("[yellow]No IPOs tracked yet. Run 'sync' first.[/yellow]")
        return

    table = Table(title=f"Tracked IPOs ({len(rows)})")
    table.add_column("Symbol", style="bold")
    table.add_column("Company")
    table.add_column("Market")
    table.add_column("Status")
    table.add_column("IPO Date")
    table.add_column("Price", justify="right")
    for s in rows:
        table.add_row(
            s.symbol,
            s.company_name,
            s.market.value,
            s.status.value,
            str(s.ipo_date) if s.ipo_date else "-",
            s.price_range or (f"{s.expected_price:.2f}" if s.expected_price else "-"),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option(
    "--provider",
    "-p",
    type=click.Choice(["perplexity", "github", "claude"], case_sensitive=False),
    default=None,
    help="LLM provider (defaults to llm.default_provider).",
)
@click.pass_context
def analyze(ctx: click.Context, symbol: str, provider: str | None) -> None:
    """Run an AI investment analysis of one IPO."""
    config = _load_config(ctx)

    async def _run():
        from ipo_tracker.analyzers import create_analyst
        from ipo_tracker.core.models import CanonicalStockRecord, LLMProvider

        analyst = create_analyst(
            config.llm, LLMProvider(provider.lower()) if provider else None
        )
        store = await _create_store_async(config)
        try:
            stock = await store.find_stock_by_symbol(symbol)
        finally:
            await store.close()
        target = stock or CanonicalStockRecord(
            symbol=symbol.upper(), company_name=symbol.upper()
        )
        return await analyst.analyze_stock(target)

    from ipo_tracker.core.exceptions import IpoTrackerError

    try:
        analysis = _run_async(_run())
    except IpoTrackerError as e:
        console.print(f"[red]Analysis failed: {e}[/red]")
        raise SystemExit(1)

    console.print(f"[bold]{analysis.symbol}[/bold] {analysis.company_name}")
    console.print(f"  Provider: {analysis.provider}")
    console.print(f"  Risk: {analysis.risk_level}  |  Recommendation: {analysis.recommendation}")
    if analysis.price_target is not None:
        console.print(f"  Price target: {analysis.price_target:.2f}")
    console.print()
    console.print(analysis.summary)
    for label, items in (("Pros", analysis.pros), ("Cons", analysis.cons)):
        if items:
            console.print(f"\n[bold]{label}[/bold]")
            for item in items:
                console.print(f"  - {item}")


# ---------------------------------------------------------------------------
# catalog-sync
# ---------------------------------------------------------------------------


@cli.command("catalog-sync")
@click.argument("kind", type=click.Choice(["ai-agents", "mcp"], case_sensitive=False))
@click.pass_context
def catalog_sync(ctx: click.Context, kind: str) -> None:
    """Refresh the AI-agent or MCP repository catalog from GitHub."""
    config = _load_config(ctx)

    async def _run():
        from ipo_tracker.catalog import create_catalog_sync
        from ipo_tracker.core.models import CatalogKind

        store = await _create_store_async(config)
        job = create_catalog_sync(CatalogKind(kind.lower()), config.github, store)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                progress.add_task(f"Searching GitHub for {kind}...", total=None)
                return await job.sync_all()
        finally:
            await job.close()
            await store.close()

    result = _run_async(_run())
    console.print(
        f"[green]Synced {result.total_synced} repositories[/green] "
        f"({result.queries} queries, {result.skipped} skipped, "
        f"{len(result.errors)} errors)"
    )
    if ctx.obj["verbose"]:
        for error in result.errors:
            console.print(f"  [yellow]{error}[/yellow]")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address (defaults to api.host).")
@click.option("--port", "-p", type=int, default=None, help="Port (defaults to api.port).")
@click.option("--reload", is_flag=True, default=False, help="Auto-reload on code changes.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the REST API server."""
    import uvicorn

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port

    console.print(f"Starting ipo-tracker API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "ipo_tracker.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show per-market stock counts and catalog sizes."""
    async def _run():
        from ipo_tracker.core.models import CatalogKind

        config = _load_config(ctx)
        store = await _create_store_async(config)
        try:
            markets = await store.get_market_stats()
            catalogs = {kind: await store.get_catalog_stats(kind) for kind in CatalogKind}
        finally:
            await store.close()

        table = Table(title="IPO Tracker Status")
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")

        table.add_row("Storage backend", config.storage.backend.value)
        table.add_row("Database path", config.storage.sqlite_path)
        table.add_section()
        if not markets:
            table.add_row("Tracked IPOs", "0")
        for info in markets:
            last = info.last_update.isoformat(timespec="seconds") if info.last_update else "N/A"
            table.add_row(f"{info.market} IPOs", str(info.count))
            table.add_row(f"{info.market} last update", last)
        table.add_section()
        for kind, stats in catalogs.items():
            table.add_row(f"Catalog {kind}", str(stats["total"]))

        console.print(table)

    _run_async(_run())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
