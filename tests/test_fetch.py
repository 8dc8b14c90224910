import threading

import pytest

from bento_indexer.fetch import (
    BlockBatch,
    BlockRange,
    FetchError,
    fetch_chunk,
    fetch_parallel,
)

MAX_RANGE = 1_800_000


def make_block(block_hash, timestamp):
    return {
        "block": {
            "hash": block_hash,
            "timestamp": timestamp,
            "chainFrom": 1,
            "chainTo": 2,
            "height": 1000,
            "deps": ["dep1", "dep2"],
            "transactions": [],
            "nonce": "test_nonce",
            "version": 1,
            "depStateHash": "dep_hash",
            "txsHash": "txs_hash",
            "target": "target",
            "ghostUncles": [],
        },
        "events": [],
    }


class FakeProvider:
    def __init__(self, responses=None, failures=None):
        self.responses = responses or {}
        self.failures = failures or {}
        self.calls = []
        self._lock = threading.Lock()

    def get_blocks_and_events(self, from_ts, to_ts):
        with self._lock:
            self.calls.append((from_ts, to_ts))
        if (from_ts, to_ts) in self.failures:
            raise RuntimeError(self.failures[(from_ts, to_ts)])
        if (from_ts, to_ts) in self.responses:
            return self.responses[(from_ts, to_ts)]
        return {"blocksAndEvents": [[make_block(f"hash-{from_ts}", from_ts)]]}


def test_fetch_parallel_range_division():
    provider = FakeProvider()
    batches = fetch_parallel(provider, BlockRange(1000, 5000), 4, MAX_RANGE)

    assert len(batches) == 4
    assert [batch.range for batch in batches] == [
        BlockRange(1000, 2000),
        BlockRange(2000, 3000),
        BlockRange(3000, 4000),
        BlockRange(4000, 5000),
    ]
    assert sorted(provider.calls) == [(1000, 2000), (2000, 3000), (3000, 4000), (4000, 5000)]
    assert [batch.blocks[0]["block"]["hash"] for batch in batches] == [
        "hash-1000",
        "hash-2000",
        "hash-3000",
        "hash-4000",
    ]


def test_fetch_parallel_covers_whole_range_when_uneven():
    provider = FakeProvider()
    batches = fetch_parallel(provider, BlockRange(0, 10), 3, MAX_RANGE)

    assert [batch.range for batch in batches] == [
        BlockRange(0, 3),
        BlockRange(3, 6),
        BlockRange(6, 10),
    ]
    for previous, current in zip(batches, batches[1:]):
        assert previous.range.to_ts == current.range.from_ts


def test_fetch_parallel_error_handling():
    provider = FakeProvider(failures={(2000, 3000): "Simulated worker failure"})

    with pytest.raises(FetchError) as excinfo:
        fetch_parallel(provider, BlockRange(1000, 5000), 4, MAX_RANGE)

    message = str(excinfo.value)
    assert "Failed to fetch chunk" in message
    assert "Simulated worker failure" in message
    assert "(worker 1/4)" in message


def test_fetch_parallel_rejects_zero_workers():
    with pytest.raises(ValueError):
        fetch_parallel(FakeProvider(), BlockRange(0, 100), 0)


def test_fetch_parallel_single_worker_uses_whole_range():
    provider = FakeProvider()
    batches = fetch_parallel(provider, BlockRange(100, 900), 1)
    assert [batch.range for batch in batches] == [BlockRange(100, 900)]
    assert provider.calls == [(100, 900)]


def test_fetch_chunk_max_range_limit():
    provider = FakeProvider()
    block_range = BlockRange(1000, 1000 + MAX_RANGE + 1)

    with pytest.raises(FetchError, match="Timestamp range exceeds maximum limit"):
        fetch_chunk(provider, block_range, MAX_RANGE)
    assert provider.calls == []


def test_fetch_chunk_at_max_range_is_allowed():
    provider = FakeProvider()
    batch = fetch_chunk(provider, BlockRange(1000, 1000 + MAX_RANGE), MAX_RANGE)
    assert provider.calls == [(1000, 1000 + MAX_RANGE)]
    assert len(batch.blocks) == 1


def test_fetch_chunk_success():
    block = make_block("test_hash", 1000)
    provider = FakeProvider(responses={(1000, 2000): {"blocksAndEvents": [[block]]}})

    batch = fetch_chunk(provider, BlockRange(1000, 2000), MAX_RANGE)

    assert batch == BlockBatch(range=BlockRange(1000, 2000), blocks=[block])
    assert batch.range.from_ts == 1000
    assert batch.range.to_ts == 2000


def test_fetch_chunk_flattens_groups_in_order():
    first = make_block("a", 1)
    second = make_block("b", 2)
    third = make_block("c", 3)
    provider = FakeProvider(
        responses={(0, 10): {"blocksAndEvents": [[first, second], [], [third]]}}
    )

    batch = fetch_chunk(provider, BlockRange(0, 10))

    assert [entry["block"]["hash"] for entry in batch.blocks] == ["a", "b", "c"]


def test_fetch_chunk_rejects_response_without_blocks():
    provider = FakeProvider(responses={(0, 10): {"unexpected": []}})
    with pytest.raises(FetchError):
        fetch_chunk(provider, BlockRange(0, 10))


def test_fetch_chunk_propagates_provider_error():
    provider = FakeProvider(failures={(0, 10): "boom"})
    with pytest.raises(RuntimeError, match="boom"):
        fetch_chunk(provider, BlockRange(0, 10))