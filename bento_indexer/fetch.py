"""Fetching blocks with their events over timestamp ranges, one chunk or many in parallel."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Fetching a range of blocks failed."""


class BlockProvider(Protocol):
    def get_blocks_and_events(self, from_ts: int, to_ts: int) -> Any: ...


@dataclass(frozen=True)
class BlockRange:
    from_ts: int
    to_ts: int

    @property
    def span(self) -> int:
        return self.to_ts - self.from_ts


@dataclass
class BlockBatch:
    range: BlockRange
    blocks: list[Any] = field(default_factory=list)


def _groups(response: Any) -> Iterable[Iterable[Any]]:
    if isinstance(response, Mapping):
        for key in ("blocksAndEvents", "blocks_and_events"):
            if key in response:
                return response[key] or []
        raise FetchError("response holds no blocks and events")
    try:
        return response.blocks_and_events
    except AttributeError:
        raise FetchError("response holds no blocks and events") from None


def _truncating_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def fetch_chunk(
    provider: BlockProvider, block_range: BlockRange, max_range: int | None = None
) -> BlockBatch:
    """Fetch the blocks in one range, flattening the per-chain groups into one list.

    Raises FetchError without asking the provider when the range is wider than ``max_range``.
    """
    if max_range is not None and block_range.span > max_range:
        raise FetchError(
            "Timestamp range exceeds maximum limit, "
            f"maximum {max_range}, got {block_range.span}"
        )

    started = time.perf_counter()
    response = provider.get_blocks_and_events(block_range.from_ts, block_range.to_ts)
    blocks = [block for group in _groups(response) for block in group]
    elapsed = time.perf_counter() - started

    logger.debug(
        "Fetched %d blocks from timestamp %d to timestamp %d (%d seconds) in %.2fs",
        len(blocks),
        block_range.from_ts,
        block_range.to_ts,
        _truncating_div(block_range.span, 1_000),
        elapsed,
    )
    return BlockBatch(range=block_range, blocks=blocks)


def _split(block_range: BlockRange, num_workers: int) -> list[BlockRange]:
    chunk_size = _truncating_div(block_range.span, num_workers)
    ranges = []
    for worker in range(num_workers):
        start = block_range.from_ts + worker * chunk_size
        end = block_range.to_ts if worker == num_workers - 1 else start + chunk_size
        ranges.append(BlockRange(start, end))
    return ranges


def fetch_parallel(
    provider: BlockProvider,
    block_range: BlockRange,
    num_workers: int,
    max_range: int | None = None,
) -> list[BlockBatch]:
    """Split the range into ``num_workers`` chunks and fetch them concurrently.

    Batches come back in range order; the first failing chunk, in that order, raises
    a FetchError naming the worker.
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be at least 1, got {num_workers}")

    logger.debug(
        "Starting parallel fetch with %d workers for range %d-%d",
        num_workers,
        block_range.from_ts,
        block_range.to_ts,
    )

    chunks = _split(block_range, num_workers)
    results: list[BlockBatch] = []
    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = []
        for worker, chunk in enumerate(chunks):
            logger.debug("Dispatching worker %d: %d-%d", worker, chunk.from_ts, chunk.to_ts)
            futures.append(executor.submit(fetch_chunk, provider, chunk, max_range))

        for worker, future in enumerate(futures):
            try:
                batch = future.result()
            except Exception as exc:
                logger.error("Worker %d failed: %s", worker, exc)
                for pending in futures[worker + 1 :]:
                    pending.cancel()
                raise FetchError(
                    f"Failed to fetch chunk (worker {worker}/{num_workers}): {exc}"
                ) from exc
            logger.debug("Worker %d completed with %d blocks", worker, len(batch.blocks))
            results.append(batch)

    logger.debug("Parallel fetch completed successfully, retrieved %d batches", len(results))
    return results