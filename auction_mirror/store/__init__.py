"""Listing store SPI and backends."""

from __future__ import annotations

from ..config import StoreConfig
from .base import SEARCH_LIMIT, ListingStore
from .memory_store import InMemoryListingStore
from .mongo_store import MongoListingStore


def build_store(config: StoreConfig) -> ListingStore:
    """Return the backend selected by ``config.backend``."""

    if config.backend == "memory":
        return InMemoryListingStore()
    if config.backend == "mongodb":
        return MongoListingStore(config)
    raise ValueError(f"Unsupported store backend: {config.backend}")


__all__ = [
    "InMemoryListingStore",
    "ListingStore",
    "MongoListingStore",
    "SEARCH_LIMIT",
    "build_store",
]
