"""Engine components orchestrating fetch → dedup → sweep → publish."""

from .dedup import HistoryDeduplicator
from .fetcher import PagedFetcher
from .parser import ParsedBatch, parse_listings
from .publisher import SnapshotPublisher
from .sweeper import ExpirySweeper

__all__ = [
    "ExpirySweeper",
    "HistoryDeduplicator",
    "PagedFetcher",
    "ParsedBatch",
    "SnapshotPublisher",
    "parse_listings",
]
