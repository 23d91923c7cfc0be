from __future__ import annotations

from auction_mirror.engine.dedup import HistoryDeduplicator
from auction_mirror.engine.sweeper import ExpirySweeper
from auction_mirror.errors import StoreError
from auction_mirror.store import InMemoryListingStore


class FailingStore(InMemoryListingStore):
    def delete_expired(self, now_ms: int) -> int:
        raise StoreError("connection reset")


def seed(store, listing, now_ms: int) -> None:
    HistoryDeduplicator(store).record(
        [
            listing("past", end=now_ms - 1000),
            listing("boundary", end=now_ms),
            listing("future", end=now_ms + 1000),
        ]
    )


def test_sweep_removes_only_expired_records(memory_store, listing, now_ms) -> None:
    seed(memory_store, listing, now_ms)

    deleted = ExpirySweeper(memory_store).sweep(now_ms)

    assert deleted == 2
    assert [record.uuid for record in memory_store.find_historical()] == ["future"]


def test_sweep_is_idempotent(memory_store, listing, now_ms) -> None:
    seed(memory_store, listing, now_ms)
    sweeper = ExpirySweeper(memory_store)

    results = [sweeper.sweep(now_ms) for _ in range(3)]

    assert results == [2, 0, 0]
    assert [record.uuid for record in memory_store.find_historical()] == ["future"]


def test_sweep_defaults_to_current_time(memory_store, listing, now_ms, monkeypatch) -> None:
    seed(memory_store, listing, now_ms)
    monkeypatch.setattr("auction_mirror.engine.sweeper.current_millis", lambda: now_ms + 5000)

    assert ExpirySweeper(memory_store).sweep() == 3
    assert memory_store.find_historical() == []


def test_sweep_failure_is_swallowed() -> None:
    assert ExpirySweeper(FailingStore()).sweep(0) is None
