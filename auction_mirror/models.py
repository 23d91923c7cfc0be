"""Listing records shared by the pipeline, the store and the query layer."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def current_millis() -> int:
    """Wall clock in milliseconds since the epoch, the unit used by ``end``."""

    return int(time.time() * 1000)


class Listing(BaseModel):
    """One active auction as mirrored from the upstream feed."""

    model_config = ConfigDict(extra="ignore")

    uuid: str = Field(min_length=1)
    auctioneer: str
    item_name: str
    starting_bid: float = Field(ge=0)
    tier: str
    bin: bool = False
    end: int
    item_lore: str | None = None

    @field_validator("tier")
    @classmethod
    def _normalise_tier(cls, value: str) -> str:
        return value.strip().upper()

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump()
        document["_id"] = self.uuid
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Listing":
        return cls.model_validate(document)


class HistoricalListing(BaseModel):
    """Once-only durable copy of a listing, kept until its end time passes."""

    model_config = ConfigDict(extra="ignore")

    uuid: str = Field(min_length=1)
    auctioneer: str
    item_name: str
    starting_bid: float = Field(ge=0)
    tier: str
    bin: bool = False
    end: int
    item_lore: str | None = None
    first_seen: datetime

    @classmethod
    def from_listing(
        cls, listing: Listing, first_seen: datetime | None = None
    ) -> "HistoricalListing":
        return cls(
            uuid=listing.uuid,
            auctioneer=listing.auctioneer,
            item_name=listing.item_name,
            starting_bid=listing.starting_bid,
            tier=listing.tier,
            bin=listing.bin,
            end=listing.end,
            item_lore=listing.item_lore,
            first_seen=first_seen or datetime.now(timezone.utc),
        )

    def is_active(self, now_ms: int) -> bool:
        return self.end > now_ms

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(exclude={"uuid"})
        document["_id"] = self.uuid
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "HistoricalListing":
        payload = dict(document)
        if "_id" in payload:
            payload["uuid"] = payload.pop("_id")
        return cls.model_validate(payload)


class FeedPage(BaseModel):
    """Body of one upstream feed response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    success: bool
    page: int | None = None
    total_pages: int = Field(default=0, ge=0, alias="totalPages")
    auctions: list[dict[str, Any]] = Field(default_factory=list)
    cause: str | None = None


__all__ = ["FeedPage", "HistoricalListing", "Listing", "current_millis"]
