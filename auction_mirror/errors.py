"""Error taxonomy shared by the ingestion pipeline and query layer."""

from __future__ import annotations


class AuctionMirrorError(Exception):
    """Base class for every error raised by auction_mirror."""


class UpstreamError(AuctionMirrorError):
    """The listing feed was unreachable, timed out or reported a failure."""

    def __init__(
        self, message: str, *, status_code: int | None = None, timed_out: bool = False
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out


class RateLimited(UpstreamError):
    """Upstream answered HTTP 429."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=429)


class StoreError(AuctionMirrorError):
    """A durable store operation failed."""


class DuplicateKey(StoreError):
    """Insert rejected because the key already exists."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Duplicate key: {key}")
        self.key = key


class NotFoundError(AuctionMirrorError):
    """Identity lookup did not find the requested display name."""


__all__ = [
    "AuctionMirrorError",
    "DuplicateKey",
    "NotFoundError",
    "RateLimited",
    "StoreError",
    "UpstreamError",
]
