from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from auction_mirror.app import AppState, app
from auction_mirror.config import FeedConfig, ServiceConfig, StoreConfig
from auction_mirror.engine import ExpirySweeper, HistoryDeduplicator, PagedFetcher, SnapshotPublisher
from auction_mirror.errors import NotFoundError
from auction_mirror.logging_conf import SERVICE_LOG, default_log_dir
from auction_mirror.models import HistoricalListing
from auction_mirror.orchestrator import IngestionOrchestrator
from auction_mirror.queries import AuctionQueries
from auction_mirror.scheduler import APSchedulerAdapter
from auction_mirror.store import InMemoryListingStore

ENDPOINT = "https://feed.test/skyblock/auctions"
SELLER = "069a79f444e94726a5befca90e38aaf5"


class StubIdentity:
    def resolve(self, display_name: str) -> str:
        if display_name == "Notch":
            return SELLER
        raise NotFoundError(f"No player named {display_name}")

    def close(self) -> None:
        return None


@pytest.fixture
def make_state(fake_feed, monkeypatch):
    def _factory(pages, failures=None, store=None) -> AppState:
        store = store or InMemoryListingStore()
        config = ServiceConfig(feed=FeedConfig(endpoint=ENDPOINT, max_attempts=1), store=StoreConfig(backend="memory"))
        feed = fake_feed(pages, failures=failures)
        scheduler = APSchedulerAdapter()
        orchestrator = IngestionOrchestrator(
            fetcher=PagedFetcher(config.feed, client=feed.client(), sleep=lambda _: None),
            deduplicator=HistoryDeduplicator(store),
            sweeper=ExpirySweeper(store),
            publisher=SnapshotPublisher(store),
            scheduler=scheduler,
        )
        identity = StubIdentity()
        state = AppState(
            config=config,
            store=store,
            scheduler=scheduler,
            orchestrator=orchestrator,
            queries=AuctionQueries(store, identity),
            identity=identity,
        )
        monkeypatch.setattr("auction_mirror.app.build_state", lambda verbose: state)
        return state

    return _factory


def test_cli_ingest_then_search(make_state, raw_auction) -> None:
    make_state([[raw_auction("a", starting_bid=50), raw_auction("b", starting_bid=5)]])
    runner = CliRunner()

    result = runner.invoke(app, ["ingest", "--json"])
    assert result.exit_code == 0, result.stdout
    report = json.loads(result.stdout)
    assert report["state"] == "done"
    assert report["published"] == 2

    result = runner.invoke(app, ["search", "--json"])
    assert result.exit_code == 0, result.stdout
    assert [row["uuid"] for row in json.loads(result.stdout)] == ["b", "a"]


def test_cli_ingest_failure_exits_non_zero(make_state) -> None:
    make_state([], failures=[503])

    result = CliRunner().invoke(app, ["ingest", "--json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["state"] == "failed"
    assert payload["failed_stage"] == "fetching"


def test_cli_search_table_output(make_state, listing) -> None:
    state = make_state([])
    SnapshotPublisher(state.store).publish([listing("a", item_name="Hyperion", tier="legendary")])

    result = CliRunner().invoke(app, ["search", "--item", "hyper"])

    assert result.exit_code == 0, result.stdout
    assert "Hyperion" in result.stdout
    assert "LEGENDARY" in result.stdout


def test_cli_history_player_by_name(make_state, listing) -> None:
    state = make_state([])
    state.store.insert_historical(HistoricalListing.from_listing(listing("mine", auctioneer=SELLER)))
    state.store.insert_historical(HistoricalListing.from_listing(listing("other")))

    result = CliRunner().invoke(app, ["history", "player", "Notch", "--json"])

    assert result.exit_code == 0, result.stdout
    assert [row["uuid"] for row in json.loads(result.stdout)] == ["mine"]


def test_cli_history_player_unknown_reports_error(make_state) -> None:
    make_state([])

    result = CliRunner().invoke(app, ["history", "player", "Nobody"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"] == "Failed to fetch historical auctions"
    assert "Nobody" in payload["details"]


def test_cli_health(make_state) -> None:
    make_state([])

    result = CliRunner().invoke(app, ["health"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"status": "ok", "store": True}

    # the first invocation closed the store on exit
    result = CliRunner().invoke(app, ["health"])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["status"] == "unavailable"


def test_cli_sweep(make_state, listing, now_ms) -> None:
    state = make_state([])
    state.store.insert_historical(HistoricalListing.from_listing(listing("old", end=now_ms - 10)))

    result = CliRunner().invoke(app, ["sweep"])

    assert result.exit_code == 0, result.stdout
    assert "Removed 1" in result.stdout


def test_cli_log_show_tails_service_log(make_state) -> None:
    make_state([])
    log_dir = default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    (log_dir / SERVICE_LOG).write_text('{"event": "a"}\n{"event": "b"}\n', encoding="utf-8")

    result = CliRunner().invoke(app, ["log", "show", "--tail", "1"])

    assert result.exit_code == 0, result.stdout
    assert result.stdout.strip() == '{"event": "b"}'
