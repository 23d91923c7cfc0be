"""Read-side operations over the current snapshot and the listing history."""

from __future__ import annotations

import re
from typing import Any, Protocol

import structlog

from .clients import normalise_identifier
from .errors import AuctionMirrorError
from .models import HistoricalListing, Listing, current_millis
from .store import SEARCH_LIMIT, ListingStore

_IDENTIFIER_RE = re.compile(r"^[0-9a-f]{32}$")


class IdentityResolver(Protocol):
    def resolve(self, display_name: str) -> str: ...


def looks_like_identifier(value: str) -> bool:
    return bool(_IDENTIFIER_RE.match(normalise_identifier(value)))


class AuctionQueries:
    """Filtered reads; an empty result is a normal answer, never an error."""

    def __init__(
        self,
        store: ListingStore,
        identity: IdentityResolver | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.logger = logger or structlog.get_logger("auction_mirror.queries")

    def search(
        self,
        item: str | None = None,
        rarity: str | None = None,
        bin: bool | None = None,
        skip: int = 0,
        seller: str | None = None,
    ) -> list[Listing]:
        auctioneer = self._seller_filter(seller) if seller else None
        return self.store.search_current(
            item=item or None,
            tier=rarity.upper() if rarity else None,
            bin=bin,
            auctioneer=auctioneer,
            skip=max(skip, 0),
            limit=SEARCH_LIMIT,
        )

    def historical_by_player(
        self, player: str, active_only: bool = False, now_ms: int | None = None
    ) -> list[HistoricalListing]:
        """History for one seller, given an identifier or a display name.

        A display name that cannot be resolved raises ``NotFoundError``.
        """

        if not player or not player.strip():
            raise ValueError("A player identifier or display name is required")
        if looks_like_identifier(player):
            auctioneer = normalise_identifier(player)
        else:
            auctioneer = self._resolve(player)
        return self.store.find_historical(
            auctioneer=auctioneer, active_after=self._cutoff(active_only, now_ms)
        )

    def historical_by_item(
        self, item: str, active_only: bool = False, now_ms: int | None = None
    ) -> list[HistoricalListing]:
        if not item or not item.strip():
            raise ValueError("Item name must be provided")
        return self.store.find_historical(
            item=item.strip(), active_after=self._cutoff(active_only, now_ms)
        )

    def health(self) -> dict[str, Any]:
        reachable = self.store.ping()
        return {"status": "ok" if reachable else "unavailable", "store": reachable}

    # ------------------------------------------------------------------
    def _seller_filter(self, seller: str) -> str | None:
        # search() keeps going without the seller filter when the lookup misses
        if looks_like_identifier(seller):
            return normalise_identifier(seller)
        try:
            return self._resolve(seller)
        except (AuctionMirrorError, ValueError) as exc:
            self.logger.warning("seller_lookup_failed", seller=seller, error=str(exc))
            return None

    def _resolve(self, display_name: str) -> str:
        if self.identity is None:
            raise ValueError("Display name lookups need an identity client")
        return self.identity.resolve(display_name)

    @staticmethod
    def _cutoff(active_only: bool, now_ms: int | None) -> int | None:
        if not active_only:
            return None
        return current_millis() if now_ms is None else now_ms


__all__ = ["AuctionQueries", "IdentityResolver", "looks_like_identifier"]
