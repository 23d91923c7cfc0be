"""MongoDB store implementation."""

from __future__ import annotations

import re
from uuid import uuid4
from typing import Any, Sequence

import structlog
from pymongo import ASCENDING, MongoClient
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from ..config import StoreConfig
from ..errors import DuplicateKey, StoreError
from ..models import HistoricalListing, Listing
from .base import SEARCH_LIMIT, ListingStore

DUPLICATE_KEY_CODE = 11000


class MongoListingStore(ListingStore):
    """Current snapshot and history kept in two MongoDB collections.

    Snapshots are written to a uniquely named staging collection and swapped
    in with ``renameCollection`` + ``dropTarget``, which MongoDB performs
    atomically for readers of the target collection.
    """

    def __init__(
        self,
        config: StoreConfig,
        client: MongoClient | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.client = client or MongoClient(
            config.uri,
            serverSelectionTimeoutMS=config.server_selection_timeout_ms,
            socketTimeoutMS=config.socket_timeout_ms,
            maxPoolSize=config.max_pool_size,
        )
        self.database = self.client[config.database]
        self.history = self.database[config.history_collection]
        self.logger = logger or structlog.get_logger("auction_mirror.store")

    # ------------------------------------------------------------------
    def has_historical(self, uuid: str) -> bool:
        try:
            return self.history.find_one({"_id": uuid}, projection={"_id": True}) is not None
        except PyMongoError as exc:
            raise StoreError(f"History lookup failed for {uuid}: {exc}") from exc

    def insert_historical(self, record: HistoricalListing) -> None:
        try:
            self.history.insert_one(record.to_document())
        except DuplicateKeyError as exc:
            raise DuplicateKey(record.uuid) from exc
        except PyMongoError as exc:
            raise StoreError(f"History insert failed for {record.uuid}: {exc}") from exc

    def delete_expired(self, now_ms: int) -> int:
        try:
            result = self.history.delete_many({"end": {"$lte": now_ms}})
        except PyMongoError as exc:
            raise StoreError(f"Expired history delete failed: {exc}") from exc
        return result.deleted_count

    def find_historical(
        self,
        *,
        auctioneer: str | None = None,
        item: str | None = None,
        active_after: int | None = None,
    ) -> list[HistoricalListing]:
        query: dict[str, Any] = {}
        if auctioneer:
            query["auctioneer"] = auctioneer
        if item:
            query["item_name"] = _contains(item)
        if active_after is not None:
            query["end"] = {"$gt": active_after}
        try:
            documents = list(self.history.find(query))
        except PyMongoError as exc:
            raise StoreError(f"History query failed: {exc}") from exc
        return [HistoricalListing.from_document(doc) for doc in documents]

    # ------------------------------------------------------------------
    def begin_snapshot(self) -> str:
        handle = f"{self.config.current_collection}__staging_{uuid4().hex}"
        try:
            self.database.create_collection(handle)
        except PyMongoError as exc:
            raise StoreError(f"Could not create staging snapshot {handle}: {exc}") from exc
        return handle

    def insert_snapshot_chunk(self, handle: str, listings: Sequence[Listing]) -> int:
        if not listings:
            return 0
        documents = [listing.to_document() for listing in listings]
        try:
            result = self.database[handle].insert_many(documents, ordered=False)
        except BulkWriteError as exc:
            details = exc.details or {}
            errors = details.get("writeErrors", [])
            unexpected = [err for err in errors if err.get("code") != DUPLICATE_KEY_CODE]
            if unexpected:
                self.logger.warning(
                    "snapshot_records_failed",
                    snapshot=handle,
                    failed=len(unexpected),
                    error=unexpected[0].get("errmsg"),
                )
            duplicates = len(errors) - len(unexpected)
            if duplicates:
                self.logger.debug(
                    "snapshot_duplicates_skipped", snapshot=handle, duplicates=duplicates
                )
            return int(details.get("nInserted", len(documents) - len(errors)))
        except PyMongoError as exc:
            raise StoreError(f"Snapshot insert failed: {exc}") from exc
        return len(result.inserted_ids)

    def promote_snapshot(self, handle: str) -> None:
        try:
            self.database[handle].rename(self.config.current_collection, dropTarget=True)
        except PyMongoError as exc:
            raise StoreError(f"Snapshot swap failed for {handle}: {exc}") from exc

    def discard_snapshot(self, handle: str) -> None:
        try:
            self.database.drop_collection(handle)
        except PyMongoError as exc:
            raise StoreError(f"Could not drop staging snapshot {handle}: {exc}") from exc

    def drop_stale_snapshots(self) -> int:
        prefix = f"{self.config.current_collection}__staging_"
        try:
            names = self.database.list_collection_names(
                filter={"name": {"$regex": f"^{re.escape(prefix)}"}}
            )
            for name in names:
                self.database.drop_collection(name)
        except PyMongoError as exc:
            raise StoreError(f"Could not drop stale snapshots: {exc}") from exc
        if names:
            self.logger.info("stale_snapshots_dropped", snapshots=names)
        return len(names)

    def search_current(
        self,
        *,
        item: str | None = None,
        tier: str | None = None,
        bin: bool | None = None,
        auctioneer: str | None = None,
        skip: int = 0,
        limit: int = SEARCH_LIMIT,
    ) -> list[Listing]:
        query: dict[str, Any] = {}
        if item:
            query["item_name"] = _contains(item)
        if tier:
            query["tier"] = tier.upper()
        if bin is not None:
            query["bin"] = bin
        if auctioneer:
            query["auctioneer"] = auctioneer
        try:
            cursor = (
                self.database[self.config.current_collection]
                .find(query, projection={"_id": False})
                .sort("starting_bid", ASCENDING)
                .skip(max(skip, 0))
                .limit(limit)
            )
            documents = list(cursor)
        except PyMongoError as exc:
            raise StoreError(f"Search failed: {exc}") from exc
        return [Listing.from_document(doc) for doc in documents]

    # ------------------------------------------------------------------
    def ensure_indexes(self) -> None:
        try:
            for field in ("auctioneer", "item_name", "end"):
                self.history.create_index([(field, ASCENDING)])
        except PyMongoError as exc:
            raise StoreError(f"Index creation failed: {exc}") from exc

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
        except PyMongoError as exc:
            self.logger.warning("store_ping_failed", error=str(exc))
            return False
        return True

    def close(self) -> None:
        self.client.close()


def _contains(text: str) -> dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


__all__ = ["MongoListingStore"]
