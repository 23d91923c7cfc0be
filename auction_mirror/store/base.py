"""Store Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..models import HistoricalListing, Listing

SEARCH_LIMIT = 100


class ListingStore(ABC):
    """Uniform contract over the current snapshot and the listing history.

    Single-record operations must be atomic and history inserts must reject
    an existing key with ``DuplicateKey``; callers rely on that instead of
    taking locks. Every other failure surfaces as ``StoreError``.
    """

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    @abstractmethod
    def has_historical(self, uuid: str) -> bool:
        """Return whether a historical record exists for ``uuid``."""

    @abstractmethod
    def insert_historical(self, record: HistoricalListing) -> None:
        """Insert one record, raising ``DuplicateKey`` if the key exists."""

    @abstractmethod
    def delete_expired(self, now_ms: int) -> int:
        """Delete history with ``end <= now_ms`` and return how many went."""

    @abstractmethod
    def find_historical(
        self,
        *,
        auctioneer: str | None = None,
        item: str | None = None,
        active_after: int | None = None,
    ) -> list[HistoricalListing]:
        """History filtered by seller, item substring and ``end > active_after``."""

    # ------------------------------------------------------------------
    # Current snapshot
    # ------------------------------------------------------------------
    @abstractmethod
    def begin_snapshot(self) -> str:
        """Create an empty staging snapshot and return its handle."""

    @abstractmethod
    def insert_snapshot_chunk(self, handle: str, listings: Sequence[Listing]) -> int:
        """Unordered insert into a staging snapshot; returns records written.

        A record that fails on its own, duplicate key or otherwise, is skipped
        and the rest of the chunk is still written. Only a failure of the
        chunk as a whole raises ``StoreError``.
        """

    @abstractmethod
    def promote_snapshot(self, handle: str) -> None:
        """Atomically make the staging snapshot the current view."""

    @abstractmethod
    def discard_snapshot(self, handle: str) -> None:
        """Drop a staging snapshot that will not be promoted."""

    @abstractmethod
    def drop_stale_snapshots(self) -> int:
        """Drop staging snapshots left behind by an interrupted publish."""

    @abstractmethod
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
        """Current listings sorted by ascending ``starting_bid``."""

    # ------------------------------------------------------------------
    @abstractmethod
    def ensure_indexes(self) -> None:
        """Create lookup and sweep indexes."""

    @abstractmethod
    def ping(self) -> bool:
        """Return whether the store is reachable."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["ListingStore", "SEARCH_LIMIT"]
