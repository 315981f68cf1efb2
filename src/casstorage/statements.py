"""statements.py - Prepared statement cache and instrumented execution."""

from __future__ import annotations

import threading
from typing import Any, Sequence

from cassandra import ConsistencyLevel

from .logger import get_logger
from .metrics import operation_errors, operations

logger = get_logger(__name__)


class StatementCache:
    """Prepares each CQL text once per session and binds it per call.

    Keyspace and table names are formatted into the text by callers; every
    user supplied value goes through `params`.
    """

    def __init__(self, session: Any) -> None:
        self.session = session
        self._prepared: dict[str, Any] = {}
        self._lock = threading.Lock()

    def prepare(self, query: str) -> Any:
        prepared = self._prepared.get(query)
        if prepared is not None:
            return prepared
        with self._lock:
            prepared = self._prepared.get(query)
            if prepared is None:
                prepared = self.session.prepare(query)
                self._prepared[query] = prepared
                logger.debug(f"[Statements] Prepared: {query}")
        return prepared

    def execute(
        self,
        operation: str,
        query: str,
        params: Sequence[Any] = (),
        consistency: int = ConsistencyLevel.QUORUM,
        fetch_size: int | None = None,
    ) -> Any:
        """Execute `query` and return the driver's result set.

        Result sets page lazily, so errors raised while iterating the rows
        are not counted here.
        """
        operations.labels(operation=operation).inc()
        try:
            bound = self.prepare(query).bind(list(params))
            bound.consistency_level = consistency
            if fetch_size is not None:
                bound.fetch_size = fetch_size
            return self.session.execute(bound)
        except Exception:
            operation_errors.labels(operation=operation).inc()
            raise
