"""Command line entry point for the auction mirror service."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Iterable, NoReturn, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .clients import IdentityClient
from .config import ConfigRepository, ServiceConfig
from .errors import AuctionMirrorError
from .logging_conf import ERROR_LOG, SERVICE_LOG, configure_logging, default_log_dir, tail_log
from .models import HistoricalListing, Listing
from .orchestrator import CycleReport, IngestionOrchestrator
from .queries import AuctionQueries
from .scheduler import APSchedulerAdapter
from .store import ListingStore, build_store

app = typer.Typer(
    help="Mirror the auction house feed into a queryable store.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
history_app = typer.Typer(help="Query historical listings.", no_args_is_help=True)
log_app = typer.Typer(help="Inspect service log files.", no_args_is_help=True)
app.add_typer(history_app, name="history")
app.add_typer(log_app, name="log")

console = Console()


@dataclass
class AppState:
    config: ServiceConfig
    store: ListingStore
    scheduler: APSchedulerAdapter
    orchestrator: IngestionOrchestrator
    queries: AuctionQueries
    identity: IdentityClient | None = None

    def close(self) -> None:
        if self.identity is not None:
            self.identity.close()
        self.store.close()


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    config = repository.load_config()
    store = build_store(config.store)
    scheduler = APSchedulerAdapter()
    identity = IdentityClient(config.identity)
    return AppState(
        config=config,
        store=store,
        scheduler=scheduler,
        orchestrator=IngestionOrchestrator.build(config, store, scheduler),
        queries=AuctionQueries(store, identity),
        identity=identity,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _fail(summary: str, exc: Exception) -> NoReturn:
    typer.echo(json.dumps({"error": summary, "details": str(exc)}))
    raise typer.Exit(code=1)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str))


def _render_report(report: CycleReport) -> Table:
    table = Table(title=f"Cycle #{report.cycle_id}", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("field", style="dim")
    table.add_column("value", style="cyan")
    table.add_row("state", report.state.value)
    table.add_row("fetched", str(report.fetched))
    table.add_row("rejected", str(report.rejected))
    table.add_row("history inserted", str(report.inserted))
    table.add_row("history swept", "-" if report.swept is None else str(report.swept))
    table.add_row("published", str(report.published))
    if report.error:
        table.add_row("failed stage", report.failed_stage.value if report.failed_stage else "-")
        table.add_row("error", report.error)
    return table


def _render_listings(
    title: str, rows: Sequence[Listing | HistoricalListing]
) -> Table:
    table = Table(title=f"{title} · {len(rows)}", box=box.SIMPLE_HEAD)
    table.add_column("uuid", style="dim", no_wrap=True)
    table.add_column("item", style="cyan")
    table.add_column("tier", style="magenta")
    table.add_column("starting bid", justify="right", style="green")
    table.add_column("bin")
    table.add_column("end")
    for row in rows:
        table.add_row(
            row.uuid,
            row.item_name,
            row.tier,
            f"{row.starting_bid:,.0f}",
            "yes" if row.bin else "no",
            str(row.end),
        )
    return table


def _render_jobs_table(jobs: Iterable[dict[str, Any]]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("job", style="cyan", no_wrap=True)
    table.add_column("next run", style="green")
    table.add_column("trigger", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time", "-")),
            str(job.get("trigger", "-")),
        )
    return table


def _show_rows(title: str, rows: Sequence[Listing | HistoricalListing], as_json: bool) -> None:
    if as_json:
        _echo_json([row.model_dump(mode="json") for row in rows])
    elif rows:
        console.print(_render_listings(title, rows))
    else:
        console.print("No matching listings.", style="dim")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    state = build_state(verbose)
    ctx.obj = state
    ctx.call_on_close(state.close)


@app.command("run", help="Run one cycle now, then keep ingesting on the configured schedule.")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    try:
        state.store.ensure_indexes()
        state.store.drop_stale_snapshots()
    except AuctionMirrorError as exc:
        _fail("Store initialisation failed", exc)
    report = state.orchestrator.start()
    console.print(_render_report(report))
    console.print(_render_jobs_table(state.scheduler.list_jobs()))
    console.print("Scheduler running; press Ctrl-C to stop.", style="dim")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping…", style="yellow")
    finally:
        state.orchestrator.shutdown()


@app.command("ingest", help="Run a single ingestion cycle and exit.")
def ingest(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    report = state.orchestrator.run_cycle()
    if as_json:
        _echo_json(report.as_dict())
    else:
        console.print(_render_report(report))
    if not report.ok:
        raise typer.Exit(code=1)


@app.command("sweep", help="Delete expired historical listings now.")
def sweep(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    deleted = state.orchestrator.sweeper.sweep()
    if deleted is None:
        console.print("Sweep failed; see error log.", style="red")
        raise typer.Exit(code=1)
    console.print(f"Removed {deleted} expired listings.", style="green")


@app.command("search", help="Search current listings, cheapest first (max 100).")
def search(
    ctx: typer.Context,
    item: Optional[str] = typer.Option(None, "--item", help="Case-insensitive item name substring."),
    rarity: Optional[str] = typer.Option(None, "--rarity", help="Rarity tier, e.g. LEGENDARY."),
    bin_only: Optional[bool] = typer.Option(
        None, "--bin/--auction", help="Only buy-it-now listings, or only bid auctions."
    ),
    skip: int = typer.Option(0, "--skip", min=0, help="Number of results to skip."),
    seller: Optional[str] = typer.Option(None, "--seller", help="Seller display name or id."),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    try:
        rows = state.queries.search(item=item, rarity=rarity, bin=bin_only, skip=skip, seller=seller)
    except AuctionMirrorError as exc:
        _fail("Search failed", exc)
    _show_rows("Current listings", rows, as_json)


@history_app.command("player", help="Historical listings of one seller.")
def history_player(
    ctx: typer.Context,
    player: str = typer.Argument(..., help="Seller display name or identifier."),
    active_only: bool = typer.Option(False, "--active-only", help="Only unexpired listings.", is_flag=True),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    try:
        rows = state.queries.historical_by_player(player, active_only=active_only)
    except (AuctionMirrorError, ValueError) as exc:
        _fail("Failed to fetch historical auctions", exc)
    _show_rows(f"History for {player}", rows, as_json)


@history_app.command("item", help="Historical listings whose item name matches.")
def history_item(
    ctx: typer.Context,
    item: str = typer.Argument(..., help="Case-insensitive item name substring."),
    active_only: bool = typer.Option(False, "--active-only", help="Only unexpired listings.", is_flag=True),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    try:
        rows = state.queries.historical_by_item(item, active_only=active_only)
    except (AuctionMirrorError, ValueError) as exc:
        _fail("Failed to fetch historical item auctions", exc)
    _show_rows(f"History for '{item}'", rows, as_json)


@app.command("health", help="Report whether the store is reachable.")
def health(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    status = state.queries.health()
    _echo_json(status)
    if not status["store"]:
        raise typer.Exit(code=1)


@log_app.command("show", help="Show the most recent service log lines.")
def log_show(
    errors: bool = typer.Option(False, "--errors", help="Show error.log instead.", is_flag=True),
    tail: int = typer.Option(100, "--tail", min=1, help="Number of lines to show."),
) -> None:
    path = default_log_dir() / (ERROR_LOG if errors else SERVICE_LOG)
    lines = tail_log(path, tail)
    if not lines:
        console.print(f"{path.name} is empty.", style="dim")
        return
    for line in lines:
        typer.echo(line.rstrip("\n"))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
