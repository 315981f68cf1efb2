"""log_reader.py - Partitioned range reads over PLog/WLog.

A log range [offset, offset + count) is read partition by partition: each
step covers one (offset_hi) partition and the inclusive offset_low range
wanted from it, so no query ever spans more than PARTITION_RECORD_COUNT
events or more than one storage partition.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Callable, Protocol

from .constants import LOW_MASK, MAX_OFFSET, READ_TO_THE_END
from .logger import get_logger
from .metrics import log_events_read
from .offsets import crack, uncrack

logger = get_logger(__name__)

# (part, clust_from, clust_to) -> True to continue with the next part
ReadPartFunc = Callable[[int, int, int], bool]
# (part, clust_from, clust_to) -> iterable of (offset_low, event) rows
ReadQueryFunc = Callable[[int, int, int], Any]
LogReaderCallback = Callable[[int, bytes], Any]


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


def log_parts(start_offset: int, to_read_count: int) -> Iterator[tuple[int, int, int]]:
    """Yield (part, clust_from, clust_to) steps covering the requested range.

    `to_read_count` may be READ_TO_THE_END; the caller then stops consuming
    when a part comes back empty.
    """
    if start_offset < 0:
        raise ValueError(f"start_offset must be non-negative, got {start_offset}")
    if to_read_count < 0:
        raise ValueError(f"to_read_count must be non-negative, got {to_read_count}")

    if to_read_count == READ_TO_THE_END:
        finish_offset = READ_TO_THE_END
    else:
        finish_offset = min(start_offset + to_read_count - 1, MAX_OFFSET)
    if finish_offset < start_offset:
        return

    min_part, min_clust = crack(start_offset)
    max_part, max_clust = crack(finish_offset)

    part = min_part
    while part <= max_part:
        clust_from = min_clust if part == min_part else 0
        clust_to = max_clust if part == max_part else LOW_MASK
        yield part, clust_from, clust_to
        part += 1


def read_log_parts(start_offset: int, to_read_count: int, read_part: ReadPartFunc) -> None:
    """Call `read_part` for every planned step until it returns False."""
    for part, clust_from, clust_to in log_parts(start_offset, to_read_count):
        if not read_part(part, clust_from, clust_to):
            break


def read_log(
    cancel: CancelToken | None,
    offset: int,
    to_read_count: int,
    read_query: ReadQueryFunc,
    cb: LogReaderCallback,
    log_name: str = "log",
) -> None:
    """Stream `to_read_count` events starting at `offset` into `cb`.

    `read_query` runs the query for one part and returns its rows in
    offset_low order. An exception raised by `cb` or by the driver stops the
    read and propagates. A set `cancel` token stops the read quietly.
    """

    def read_part(part: int, clust_from: int, clust_to: int) -> bool:
        rows = read_query(part, clust_from, clust_to)
        read = 0
        try:
            for clust, event in rows:
                if cancel is not None and cancel.is_set():
                    logger.debug(f"[LogReader] {log_name} read cancelled at part {part}")
                    return False
                cb(uncrack(part, clust), bytes(event))
                read += 1
        finally:
            if read:
                log_events_read.labels(log=log_name).inc(read)
        return read > 0

    read_log_parts(offset, to_read_count, read_part)
