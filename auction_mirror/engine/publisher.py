"""Replace the current listings view with a freshly fetched batch."""

from __future__ import annotations

from typing import Iterator, Sequence

import structlog

from ..errors import StoreError
from ..models import Listing
from ..store import ListingStore


def chunked(items: Sequence[Listing], size: int) -> Iterator[Sequence[Listing]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class SnapshotPublisher:
    """Double-buffered snapshot swap.

    The batch goes into a private staging snapshot chunk by chunk and is only
    promoted once every chunk is in, so readers see either the previous view
    or the complete new one. A failed publish leaves the previous view live.
    """

    def __init__(
        self,
        store: ListingStore,
        chunk_size: int = 1000,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.store = store
        self.chunk_size = chunk_size
        self.logger = logger or structlog.get_logger("auction_mirror.publisher")

    def publish(self, listings: Sequence[Listing]) -> int:
        handle = self.store.begin_snapshot()
        total_chunks = -(-len(listings) // self.chunk_size)
        inserted = 0
        try:
            for index, chunk in enumerate(chunked(listings, self.chunk_size), start=1):
                inserted += self.store.insert_snapshot_chunk(handle, chunk)
                self.logger.debug("snapshot_chunk_inserted", chunk=index, chunks=total_chunks)
            self.store.promote_snapshot(handle)
        except Exception:
            self._discard(handle)
            raise
        self.logger.info(
            "snapshot_published", listings=len(listings), inserted=inserted, chunks=total_chunks
        )
        return inserted

    def _discard(self, handle: str) -> None:
        try:
            self.store.discard_snapshot(handle)
        except StoreError as exc:
            self.logger.warning("snapshot_discard_failed", snapshot=handle, error=str(exc))


__all__ = ["SnapshotPublisher", "chunked"]
