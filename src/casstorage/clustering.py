"""clustering.py - Clustering-column ranges for view reads.

Clustering columns are compared as unsigned byte strings. A partial prefix
p selects the half-open range [p, next_prefix(p)).
"""

from __future__ import annotations


def is_max(c_cols: bytes) -> bool:
    """True if every byte is 0xFF (an empty value is trivially max)."""
    return all(b == 0xFF for b in c_cols)


def next_prefix(prefix: bytes) -> bytes | None:
    """Smallest byte string of the same length greater than `prefix`.

    Treats `prefix` as a big-endian base-256 numeral and adds one with
    carry. Returns None for an empty or all-0xFF prefix, which has no
    successor of the same length.
    """
    if not prefix or is_max(prefix):
        return None
    upper = bytearray(prefix)
    i = len(upper) - 1
    while upper[i] == 0xFF:
        upper[i] = 0
        i -= 1
    upper[i] += 1
    return bytes(upper)


def view_range(partial_c_cols: bytes | None) -> tuple[bytes | None, bytes | None]:
    """(start, finish) bounds for reading by a partial clustering prefix.

    - empty prefix: whole partition, (None, None)
    - all 0xFF: right-open, (prefix, None)
    - otherwise: closed-open, (prefix, next_prefix(prefix))
    """
    if not partial_c_cols:
        return None, None
    start = bytes(partial_c_cols)
    return start, next_prefix(start)


def is_absurd_range(start_c_cols: bytes | None, finish_c_cols: bytes | None) -> bool:
    return bool(start_c_cols) and bool(finish_c_cols) and start_c_cols >= finish_c_cols


def range_condition(
    start_c_cols: bytes | None, finish_c_cols: bytes | None
) -> tuple[str, list[bytes]]:
    """CQL condition suffix and its parameters for a c_col range."""
    if start_c_cols and finish_c_cols:
        return " and c_col >= ? and c_col < ?", [bytes(start_c_cols), bytes(finish_c_cols)]
    if start_c_cols:
        return " and c_col >= ?", [bytes(start_c_cols)]
    if finish_c_cols:
        return " and c_col < ?", [bytes(finish_c_cols)]
    return "", []
