from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pymongo.errors import BulkWriteError

from auction_mirror.config import StoreConfig
from auction_mirror.engine.publisher import SnapshotPublisher, chunked
from auction_mirror.errors import StoreError
from auction_mirror.store import InMemoryListingStore, MongoListingStore


class RecordingStore(InMemoryListingStore):
    def __init__(self, fail_chunk: int | None = None) -> None:
        super().__init__()
        self.chunks: list[list[str]] = []
        self.fail_chunk = fail_chunk

    def insert_snapshot_chunk(self, handle, listings):
        self.chunks.append([listing.uuid for listing in listings])
        if self.fail_chunk is not None and len(self.chunks) == self.fail_chunk:
            raise StoreError("write concern timeout")
        return super().insert_snapshot_chunk(handle, listings)


def current_ids(store) -> list[str]:
    return sorted(listing.uuid for listing in store.search_current())


def test_publish_replaces_the_whole_view(memory_store, listing) -> None:
    publisher = SnapshotPublisher(memory_store)
    publisher.publish([listing("old-1"), listing("old-2")])

    inserted = publisher.publish([listing("new-1")])

    assert inserted == 1
    assert current_ids(memory_store) == ["new-1"]
    assert memory_store.staging_handles == []


def test_publish_inserts_in_chunks(listing) -> None:
    store = RecordingStore()
    publisher = SnapshotPublisher(store, chunk_size=2)

    publisher.publish([listing(str(index)) for index in range(5)])

    assert store.chunks == [["0", "1"], ["2", "3"], ["4"]]
    assert current_ids(store) == ["0", "1", "2", "3", "4"]


def test_duplicate_listings_in_batch_are_ignored(memory_store, listing) -> None:
    publisher = SnapshotPublisher(memory_store, chunk_size=2)

    inserted = publisher.publish([listing("a"), listing("b"), listing("a")])

    assert inserted == 2
    assert current_ids(memory_store) == ["a", "b"]


def test_failed_chunk_keeps_previous_view(listing) -> None:
    store = RecordingStore()
    publisher = SnapshotPublisher(store, chunk_size=1)
    publisher.publish([listing("kept")])
    store.fail_chunk = len(store.chunks) + 2

    with pytest.raises(StoreError):
        publisher.publish([listing("x"), listing("y"), listing("z")])

    assert current_ids(store) == ["kept"]
    assert store.staging_handles == []
    # chunks after the failing one are not attempted
    assert store.chunks[-1] == ["y"]


def test_empty_batch_publishes_empty_view(memory_store, listing) -> None:
    publisher = SnapshotPublisher(memory_store)
    publisher.publish([listing("a")])

    assert publisher.publish([]) == 0
    assert current_ids(memory_store) == []


def test_chunk_size_must_be_positive(memory_store) -> None:
    with pytest.raises(ValueError):
        SnapshotPublisher(memory_store, chunk_size=0)


def test_chunked_splits_sequences() -> None:
    assert [list(chunk) for chunk in chunked([1, 2, 3], 2)] == [[1, 2], [3]]


def test_record_failure_does_not_block_later_chunks(listing) -> None:
    client = MagicMock()
    staging = client.__getitem__.return_value.__getitem__.return_value
    staging.insert_many.side_effect = [
        BulkWriteError(
            {
                "writeErrors": [{"code": 121, "index": 1, "errmsg": "Document failed validation"}],
                "nInserted": 1,
            }
        ),
        MagicMock(inserted_ids=["c", "d"]),
    ]
    publisher = SnapshotPublisher(MongoListingStore(StoreConfig(), client=client), chunk_size=2)

    inserted = publisher.publish([listing("a"), listing("b"), listing("c"), listing("d")])

    assert inserted == 3
    batches = [[doc["_id"] for doc in call.args[0]] for call in staging.insert_many.call_args_list]
    assert batches == [["a", "b"], ["c", "d"]]
    staging.rename.assert_called_once_with("auctions", dropTarget=True)
    client.__getitem__.return_value.drop_collection.assert_not_called()
