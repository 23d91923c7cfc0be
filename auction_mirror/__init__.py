"""Auction mirror: feed ingestion, listing history and snapshot queries."""

__version__ = "0.1.0"
