"""offsets.py - Split 64-bit offsets and record ids into (hi, lo) key parts.

`hi` goes to the partition key, `lo` (the low PARTITION_BITS bits) to the
clustering column, so one partition holds at most PARTITION_RECORD_COUNT
consecutive offsets.
"""

from __future__ import annotations

from .constants import LOW_MASK, MAX_OFFSET, PARTITION_BITS
from .utils import assumption


def crack(value: int) -> tuple[int, int]:
    """Return (hi, lo) for a non-negative offset or record id."""
    assert assumption(value, int)
    if value < 0:
        raise ValueError(f"Offset must be non-negative, got {value}")
    if value > MAX_OFFSET:
        raise ValueError(f"Offset {value} does not fit into 63 bits")
    return value >> PARTITION_BITS, value & LOW_MASK


def uncrack(hi: int, lo: int) -> int:
    """Inverse of crack()."""
    assert 0 <= lo <= LOW_MASK, f"lo must be within [0, {LOW_MASK}], got {lo}"
    return (hi << PARTITION_BITS) | lo
