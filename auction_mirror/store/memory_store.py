"""Process-local store used for tests and dry runs."""

from __future__ import annotations

from itertools import count
from threading import Lock
from typing import Sequence

from ..errors import DuplicateKey, StoreError
from ..models import HistoricalListing, Listing
from .base import SEARCH_LIMIT, ListingStore


class InMemoryListingStore(ListingStore):
    """Dictionary backed store with the same key semantics as MongoDB."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._history: dict[str, HistoricalListing] = {}
        self._current: dict[str, Listing] = {}
        self._staging: dict[str, dict[str, Listing]] = {}
        self._handles = count(1)
        self.closed = False

    # ------------------------------------------------------------------
    def has_historical(self, uuid: str) -> bool:
        with self._lock:
            return uuid in self._history

    def insert_historical(self, record: HistoricalListing) -> None:
        with self._lock:
            if record.uuid in self._history:
                raise DuplicateKey(record.uuid)
            self._history[record.uuid] = record

    def delete_expired(self, now_ms: int) -> int:
        with self._lock:
            expired = [key for key, record in self._history.items() if record.end <= now_ms]
            for key in expired:
                del self._history[key]
            return len(expired)

    def find_historical(
        self,
        *,
        auctioneer: str | None = None,
        item: str | None = None,
        active_after: int | None = None,
    ) -> list[HistoricalListing]:
        with self._lock:
            records = list(self._history.values())
        needle = item.casefold() if item else None
        return [
            record
            for record in records
            if (not auctioneer or record.auctioneer == auctioneer)
            and (needle is None or needle in record.item_name.casefold())
            and (active_after is None or record.end > active_after)
        ]

    # ------------------------------------------------------------------
    def begin_snapshot(self) -> str:
        with self._lock:
            handle = f"snapshot-{next(self._handles)}"
            self._staging[handle] = {}
            return handle

    def insert_snapshot_chunk(self, handle: str, listings: Sequence[Listing]) -> int:
        with self._lock:
            staging = self._staging.get(handle)
            if staging is None:
                raise StoreError(f"Unknown staging snapshot: {handle}")
            inserted = 0
            for listing in listings:
                if listing.uuid in staging:
                    continue
                staging[listing.uuid] = listing
                inserted += 1
            return inserted

    def promote_snapshot(self, handle: str) -> None:
        with self._lock:
            staging = self._staging.pop(handle, None)
            if staging is None:
                raise StoreError(f"Unknown staging snapshot: {handle}")
            self._current = staging

    def discard_snapshot(self, handle: str) -> None:
        with self._lock:
            self._staging.pop(handle, None)

    def drop_stale_snapshots(self) -> int:
        with self._lock:
            stale = len(self._staging)
            self._staging.clear()
            return stale

    def search_current(
        self,
        *,
        item: str | None = None,
        tier: str | None = None,
        bin: bool | None = None,
        auctioneer: str | None = None,
        skip: int = 0,
        limit: int = SEARCH_LIMIT,
    ) -> list[Listing]:
        with self._lock:
            listings = list(self._current.values())
        needle = item.casefold() if item else None
        wanted_tier = tier.upper() if tier else None
        matches = [
            listing
            for listing in listings
            if (needle is None or needle in listing.item_name.casefold())
            and (wanted_tier is None or listing.tier == wanted_tier)
            and (bin is None or listing.bin is bin)
            and (not auctioneer or listing.auctioneer == auctioneer)
        ]
        matches.sort(key=lambda listing: listing.starting_bid)
        start = max(skip, 0)
        return matches[start : start + limit]

    # ------------------------------------------------------------------
    def ensure_indexes(self) -> None:
        return

    def ping(self) -> bool:
        return not self.closed

    def close(self) -> None:
        self.closed = True

    @property
    def staging_handles(self) -> list[str]:
        with self._lock:
            return list(self._staging)


__all__ = ["InMemoryListingStore"]
