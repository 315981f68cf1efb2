from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

from cassandra import ConsistencyLevel

from .logger import get_logger
from .metrics import setup_retries

logger = get_logger(__name__)

T = TypeVar("T")


def assumption(obj: Any, *expected: type) -> bool:
    """Check against multiple possible types"""
    for exp in expected:
        if isinstance(obj, exp):
            return True
    _raise_assert(obj, expected)
    return False


def _raise_assert(obj: Any, expected: tuple[type, ...]) -> bool:
    if len(expected) == 1:
        msg = f"Expected {expected[0].__name__}, instead got {type(obj).__name__} (value: {obj!r})"
    else:
        names = ", ".join(e.__name__ for e in expected)
        msg = f"Expected one of ({names}), instead got {type(obj).__name__} (value: {obj!r})"
    raise AssertionError(msg)


def do_with_attempts(attempts: int, delay: float, cmd: Callable[[], T]) -> T:
    """Run `cmd` until it succeeds or `attempts` runs have failed.

    Sleeps `delay` seconds between attempts and re-raises the last error
    once the attempts are exhausted. Only meant for idempotent operations
    such as `create ... if not exists`.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    attempt = 1
    while True:
        try:
            return cmd()
        except Exception as ex:
            if attempt >= attempts:
                logger.error(f"[Retry] Giving up after {attempts} attempts: {ex}")
                raise
            setup_retries.inc()
            logger.warning(
                f"[Retry] Attempt {attempt}/{attempts} failed: {ex}; retrying in {delay}s"
            )
            time.sleep(delay)
            attempt += 1


def get_consistency(high_consistency: bool) -> int:
    """Map the per-call high/low consistency flag to a driver level."""
    if high_consistency:
        return ConsistencyLevel.LOCAL_QUORUM
    return ConsistencyLevel.LOCAL_ONE
