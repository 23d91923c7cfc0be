"""Expiry of historical listings whose end time has passed."""

from __future__ import annotations

import structlog

from ..models import current_millis
from ..store import ListingStore


class ExpirySweeper:
    """Best-effort housekeeping; a failed sweep is logged and retried next run."""

    def __init__(self, store: ListingStore, logger: structlog.BoundLogger | None = None) -> None:
        self.store = store
        self.logger = logger or structlog.get_logger("auction_mirror.sweeper")

    def sweep(self, now_ms: int | None = None) -> int | None:
        """Delete history with ``end <= now_ms``; ``None`` means the sweep failed."""

        cutoff = current_millis() if now_ms is None else now_ms
        try:
            deleted = self.store.delete_expired(cutoff)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("sweep_failed", cutoff=cutoff, error=str(exc))
            return None
        self.logger.info("sweep_completed", cutoff=cutoff, deleted=deleted)
        return deleted


__all__ = ["ExpirySweeper"]
