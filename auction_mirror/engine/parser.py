"""Turn raw feed records into validated listings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog
from pydantic import ValidationError

from ..models import Listing


@dataclass(slots=True)
class ParsedBatch:
    listings: list[Listing] = field(default_factory=list)
    rejected: int = 0


def parse_listings(
    raw_records: Iterable[dict[str, Any]], logger: structlog.BoundLogger | None = None
) -> ParsedBatch:
    """Validate raw auctions; records missing required fields are dropped."""

    logger = logger or structlog.get_logger("auction_mirror.parser")
    batch = ParsedBatch()
    for raw in raw_records:
        try:
            batch.listings.append(Listing.model_validate(raw))
        except ValidationError as exc:
            batch.rejected += 1
            logger.warning(
                "listing_rejected",
                uuid=raw.get("uuid") if isinstance(raw, dict) else None,
                errors=exc.error_count(),
            )
    return batch


__all__ = ["ParsedBatch", "parse_listings"]
