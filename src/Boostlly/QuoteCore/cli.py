"""Typer-based CLI for QuoteCore with Pydantic v2 configuration."""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import QuoteCoreConfig, export_config_schema, load_config, validate_config_file
from .dates import weekday_index
from .fetcher import QuoteFetcher
from .net import build_http_client
from .providers import build_providers
from .ratelimit import SourceRateLimiter
from .sources import WEEKLY_SCHEDULE, SourceSelector
from .storage import InMemoryStore, KeyValueStore, SQLiteStore
from .types import Quote
from .vault import LocalVault

console = Console()
app = typer.Typer(help="Boostlly quotes: resilient daily quotes with an offline vault")
vault_app = typer.Typer(help="Inspect the bundled offline vault")
config_app = typer.Typer(help="Configuration inspection and validation")
app.add_typer(vault_app, name="vault")
app.add_typer(config_app, name="config")


@dataclass
class _State:
    config_path: Optional[str] = None
    store_path: Optional[Path] = None
    verbose: bool = False


def _setup_logging(verbose: bool) -> None:
    """Setup logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _open_store(path: Optional[Path]) -> KeyValueStore:
    return SQLiteStore(path) if path else InMemoryStore()


def make_fetcher(
    config: QuoteCoreConfig, store: KeyValueStore, client: Optional[httpx.Client]
) -> QuoteFetcher:
    """Build the fetcher used by commands; without a client only the local vault answers."""
    providers = build_providers(config, client) if client is not None else {}
    return QuoteFetcher(providers, store, config=config)


@contextmanager
def _fetcher(ctx: typer.Context, offline: bool) -> Iterator[QuoteFetcher]:
    state: _State = ctx.obj
    cfg = load_config(path=state.config_path)
    store = _open_store(state.store_path)
    client = None if offline else build_http_client(cfg.http)
    fetcher = make_fetcher(cfg, store, client)
    try:
        yield fetcher
    finally:
        fetcher.close()
        if client is not None:
            client.close()
        if isinstance(store, SQLiteStore):
            store.close()


def _render_quote(quote: Quote, title: str) -> None:
    console.print(
        Panel(
            f"[bold]“{quote.text}”[/bold]\n\n— {quote.author}",
            title=title,
            subtitle=f"{quote.category} · {quote.source}",
            expand=False,
        )
    )


def _fail(error: Exception, verbose: bool) -> None:
    console.print(f"[red]✗ Error: {error}[/red]")
    if verbose:
        raise error
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        envvar="BOOSTLLY_CONFIG",
    ),
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        help="SQLite file for persistent state (in-memory when omitted)",
        envvar="BOOSTLLY_STORE",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    _setup_logging(verbose)
    ctx.obj = _State(config_path=config, store_path=store, verbose=verbose)


@app.command()
def today(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Ignore the stored daily quote"),
    offline: bool = typer.Option(False, "--offline", help="Use only the local vault"),
) -> None:
    """Show today's quote."""
    try:
        with _fetcher(ctx, offline) as fetcher:
            _render_quote(fetcher.get_daily_quote(force=force), "Quote of the day")
    except Exception as e:  # pylint: disable=broad-except
        _fail(e, ctx.obj.verbose)


@app.command()
def quote(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(None, "--category", help="Category or group label"),
    offline: bool = typer.Option(False, "--offline", help="Use only the local vault"),
) -> None:
    """Show the next quote."""
    try:
        with _fetcher(ctx, offline) as fetcher:
            _render_quote(fetcher.get_quote(category), "Quote")
    except Exception as e:  # pylint: disable=broad-except
        _fail(e, ctx.obj.verbose)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text or author to look for"),
    limit: int = typer.Option(10, "--limit", help="Maximum results"),
    offline: bool = typer.Option(False, "--offline", help="Search only local quotes"),
) -> None:
    """Search cached, bundled and remote quotes."""
    try:
        with _fetcher(ctx, offline) as fetcher:
            results = fetcher.search_quotes(query, limit=limit)
        table = Table(title=f"Results for {query!r}")
        table.add_column("Author", style="cyan")
        table.add_column("Quote")
        table.add_column("Source", style="magenta")
        for q in results:
            table.add_row(q.author, q.text, q.source)
        console.print(table)
        console.print(f"\n[cyan]{len(results)} result(s)[/cyan]")
    except Exception as e:  # pylint: disable=broad-except
        _fail(e, ctx.obj.verbose)


@app.command()
def sources(
    ctx: typer.Context,
    weekday: Optional[int] = typer.Option(
        None, "--weekday", min=0, max=6, help="Day of week, Sunday = 0 (default: today)"
    ),
) -> None:
    """Explain source weights, the weekly schedule and today's fallback chain."""
    try:
        cfg = load_config(path=ctx.obj.config_path)
        selector = SourceSelector(cfg.weights())
        limiter = SourceRateLimiter.from_config(cfg)
        limiter.initialize(selector.weights)
        day = weekday if weekday is not None else weekday_index(datetime.now())

        table = Table(title="Sources")
        table.add_column("Source", style="green")
        table.add_column("Weight", style="cyan")
        table.add_column("Scheduled", style="yellow")
        table.add_column("Enabled", style="magenta")
        table.add_column("Budget", style="blue")
        scheduled = {a.source: a.day_name for a in WEEKLY_SCHEDULE}
        enabled = set(cfg.enabled_sources())
        for source, weight in selector.weights.items():
            table.add_row(
                source.value,
                f"{weight:.2f}",
                scheduled.get(source, "-"),
                "[green]Yes[/green]" if source in enabled else "[red]No[/red]",
                limiter.policy(source).describe() if cfg.rate_limits.enabled else "off",
            )
        console.print(table)

        primary = selector.select_primary_source()
        chain = selector.get_fallback_chain(primary, day)
        console.print(
            Panel(
                f"Primary (sampled): [bold]{primary.value}[/bold]\n"
                f"Fallback chain: {' → '.join(s.value for s in chain)}",
                title=f"{WEEKLY_SCHEDULE[day].day_name}",
                expand=False,
            )
        )
    except Exception as e:  # pylint: disable=broad-except
        _fail(e, ctx.obj.verbose)


@app.command()
def health(ctx: typer.Context) -> None:
    """Probe every enabled provider."""
    try:
        with _fetcher(ctx, offline=False) as fetcher:
            reports = fetcher.health_check_all()
        table = Table(title="Provider health")
        table.add_column("Source", style="green")
        table.add_column("Status")
        table.add_column("Response (ms)", style="cyan")
        colors = {"healthy": "green", "degraded": "yellow", "down": "red"}
        for source, report in reports.items():
            color = colors.get(report.status, "white")
            table.add_row(source.value, f"[{color}]{report.status}[/{color}]", f"{report.response_time_ms:.0f}")
        console.print(table)
    except Exception as e:  # pylint: disable=broad-except
        _fail(e, ctx.obj.verbose)


# ============================================================================
# vault
# ============================================================================


@vault_app.command("stats")
def vault_stats() -> None:
    """Summarize the bundled collection."""
    stats = LocalVault().stats()
    table = Table(title=f"Vault: {stats.total_quotes} quotes, {stats.authors} authors")
    table.add_column("Category", style="green")
    table.add_column("Quotes", style="cyan")
    for category in stats.categories:
        table.add_row(category, str(stats.quotes_per_category[category]))
    console.print(table)


@vault_app.command("categories")
def vault_categories() -> None:
    """List category labels."""
    for category in LocalVault().categories():
        console.print(category)


@vault_app.command("duplicates")
def vault_duplicates() -> None:
    """Report quotes bundled more than once."""
    duplicates = LocalVault().find_duplicates()
    if not duplicates:
        console.print("[green]✓ No duplicates[/green]")
        return
    for dup in duplicates:
        console.print(f"[yellow]{dup.duplicate_id}[/yellow] duplicates {dup.first_id}: {dup.text}")
    raise typer.Exit(code=1)


# ============================================================================
# config
# ============================================================================


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    raw: bool = typer.Option(False, "--raw", help="Raw JSON"),
) -> None:
    """Print merged effective config."""
    try:
        cfg = load_config(path=ctx.obj.config_path)
        data = json.dumps(cfg.model_dump(mode="json"), indent=2, ensure_ascii=False)
        if raw:
            typer.echo(data)
        else:
            console.print(Panel(data, title=f"QuoteCore Config ({cfg.config_hash()[:8]})", expand=False))
    except Exception as e:  # pylint: disable=broad-except
        _fail(e, ctx.obj.verbose)


@config_app.command("validate")
def config_validate(
    config: str = typer.Argument(..., help="Path to config file"),
) -> None:
    """Validate a config file."""
    try:
        validate_config_file(config)
        console.print("[green]✓ Config valid[/green]")
    except Exception as e:  # pylint: disable=broad-except
        console.print(f"[red]✗ Invalid: {e}[/red]")
        raise typer.Exit(code=1)


@config_app.command("schema")
def config_schema(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save schema to file"),
) -> None:
    """Export JSON Schema for QuoteCoreConfig."""
    schema_data = export_config_schema()
    if output:
        output.write_text(json.dumps(schema_data, indent=2))
        console.print(f"[green]✓ Schema written to {output}[/green]")
    else:
        typer.echo(json.dumps(schema_data, indent=2))


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
