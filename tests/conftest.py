"""Shared fixtures: fake upstream feed, sample auctions and an in-memory store."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest
import structlog

from auction_mirror.config import FeedConfig, ServiceConfig, StoreConfig
from auction_mirror.models import Listing, current_millis
from auction_mirror.store import InMemoryListingStore

FEED_ENDPOINT = "https://feed.test/skyblock/auctions"


class FakeFeed:
    """MockTransport handler serving a fixed set of pages.

    ``failures`` are consumed one per cycle, on the initial request: an int is
    returned as that HTTP status, ``"timeout"`` raises a read timeout and a
    dict is served as the JSON body.
    """

    def __init__(
        self,
        pages: list[list[dict[str, Any]]],
        failures: Iterable[Any] | None = None,
        latency: float = 0.0,
    ) -> None:
        self.pages = pages
        self.failures = list(failures or [])
        self.latency = latency
        self.requests: list[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                time.sleep(self.latency)
            return self._respond(request)
        finally:
            with self._lock:
                self.in_flight -= 1

    def _respond(self, request: httpx.Request) -> httpx.Response:
        page = request.url.params.get("page")
        if page is None and self.failures:
            failure = self.failures.pop(0)
            if failure == "timeout":
                raise httpx.ReadTimeout("timed out", request=request)
            if isinstance(failure, int):
                return httpx.Response(failure, json={"success": False, "cause": "upstream"})
            return httpx.Response(200, json=failure)
        index = int(page) if page is not None else 0
        auctions = self.pages[index] if index < len(self.pages) else []
        return httpx.Response(
            200,
            json={
                "success": True,
                "page": index,
                "totalPages": len(self.pages),
                "totalAuctions": sum(len(p) for p in self.pages),
                "auctions": auctions,
            },
        )

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    @property
    def page_requests(self) -> list[str | None]:
        return [request.url.params.get("page") for request in self.requests]


@pytest.fixture(autouse=True)
def log_events():
    with structlog.testing.capture_logs() as events:
        yield events


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("AUCTION_MIRROR_HOME", str(tmp_path))
    monkeypatch.delenv("MONGODB_URI", raising=False)
    monkeypatch.delenv("HYPIXEL_API_KEY", raising=False)
    return tmp_path


@pytest.fixture
def now_ms() -> int:
    return current_millis()


@pytest.fixture
def raw_auction() -> Callable[..., dict[str, Any]]:
    def _builder(uuid: str, starting_bid: float = 100, end: int | None = None, **overrides: Any) -> dict[str, Any]:
        base: dict[str, Any] = {
            "uuid": uuid,
            "auctioneer": "0f3e6d2c9b8a4f1e8d7c6b5a4f3e2d1c",
            "profile_id": "a1b2c3d4e5f60718293a4b5c6d7e8f90",
            "item_name": f"Item {uuid}",
            "item_lore": "§7A fine item",
            "starting_bid": starting_bid,
            "tier": "RARE",
            "bin": True,
            "start": current_millis() - 60_000,
            "end": end if end is not None else current_millis() + 3_600_000,
            "category": "misc",
        }
        base.update(overrides)
        return base

    return _builder


@pytest.fixture
def listing(raw_auction) -> Callable[..., Listing]:
    def _builder(uuid: str, **overrides: Any) -> Listing:
        return Listing.model_validate(raw_auction(uuid, **overrides))

    return _builder


@pytest.fixture
def feed_config() -> FeedConfig:
    return FeedConfig(endpoint=FEED_ENDPOINT, api_key="test-key", max_attempts=3)


@pytest.fixture
def memory_store() -> InMemoryListingStore:
    return InMemoryListingStore()


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(
        feed=FeedConfig(endpoint=FEED_ENDPOINT, max_attempts=3),
        store=StoreConfig(backend="memory", chunk_size=2),
    )


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_feed() -> type[FakeFeed]:
    return FakeFeed
