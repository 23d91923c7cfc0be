"""Write-once history of every listing ever observed."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

import structlog

from ..errors import DuplicateKey
from ..models import HistoricalListing, Listing
from ..store import ListingStore


class HistoryDeduplicator:
    """Persist each newly observed listing exactly once.

    The existence check only saves a write; the store's unique key is what
    settles races between overlapping cycles, so a ``DuplicateKey`` on insert
    is a normal outcome. Any other ``StoreError`` aborts the rest of the batch
    and records inserted before it stay in place.
    """

    def __init__(self, store: ListingStore, logger: structlog.BoundLogger | None = None) -> None:
        self.store = store
        self.logger = logger or structlog.get_logger("auction_mirror.dedup")

    def record(self, listings: Iterable[Listing], observed_at: datetime | None = None) -> int:
        first_seen = observed_at or datetime.now(timezone.utc)
        inserted = 0
        for listing in listings:
            if self.store.has_historical(listing.uuid):
                continue
            try:
                self.store.insert_historical(HistoricalListing.from_listing(listing, first_seen))
            except DuplicateKey:
                self.logger.debug("history_duplicate_skipped", uuid=listing.uuid)
                continue
            inserted += 1
        self.logger.info("history_recorded", inserted=inserted)
        return inserted


__all__ = ["HistoryDeduplicator"]
