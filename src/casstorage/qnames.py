"""qnames.py - QName type and the QName -> id registry.

Views are stored under a dense numeric id instead of their textual name.
Ids live in the `qnames` table of the application keyspace and are
allocated lazily on first reference:

1. cache, then `select id ... where name = ?`
2. under the registry lock: check again, `select max(id)`, then
   `insert ... if not exists` with max + 1

The lightweight transaction on the name key means a name never receives two
ids, even when several processes race; the process that loses adopts the
winner's id. Two *different* names allocated at the same moment by
different processes can still read the same max(id), so allocation of new
names is expected to happen at single-writer bootstrap.
"""

from __future__ import annotations

import re
import threading
from typing import NamedTuple

from .constants import MAX_QNAME_ID, QNAMES
from .exceptions import InvalidQNameError, QNameLimitExceededError
from .logger import get_logger
from .metrics import qname_allocations
from .statements import StatementCache

logger = get_logger(__name__)

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class QName(NamedTuple):
    """Qualified name `pkg.Entity`."""

    pkg: str
    entity: str

    def __str__(self) -> str:
        return f"{self.pkg}.{self.entity}"

    @classmethod
    def parse(cls, value: str) -> QName:
        pkg, sep, entity = value.partition(".")
        if not sep:
            raise InvalidQNameError(value, "missing '.' separator")
        for part in (pkg, entity):
            if not _IDENT.match(part):
                raise InvalidQNameError(value, f"'{part}' is not an identifier")
        return cls(pkg, entity)


def qname_str(name: QName | str) -> str:
    if isinstance(name, QName):
        return str(name)
    return str(QName.parse(name))


class QNameRegistry:
    """Per-keyspace QName -> id lookup with lazy allocation."""

    def __init__(self, statements: StatementCache, keyspace: str) -> None:
        self.statements = statements
        self.keyspace = keyspace
        self._cache: dict[str, int] = {}
        self._lock = threading.Lock()
        self._select_id = f"select id from {keyspace}.{QNAMES} where name = ?"
        self._select_max = f"select max(id) from {keyspace}.{QNAMES}"
        self._insert = (
            f"insert into {keyspace}.{QNAMES} (name, id) values (?, ?) if not exists"
        )

    def get_id(self, name: QName | str) -> int:
        """Return the id of `name`, allocating one if it is not registered yet."""
        key = qname_str(name)
        qid = self._cache.get(key)
        if qid is not None:
            return qid
        qid = self._lookup(key)
        if qid is not None:
            return qid

        with self._lock:
            # Double check: another thread may have allocated meanwhile
            qid = self._cache.get(key)
            if qid is None:
                qid = self._lookup(key)
            if qid is None:
                qid = self._allocate(key)
            return qid

    def _lookup(self, key: str) -> int | None:
        row = self.statements.execute("qname_lookup", self._select_id, [key]).one()
        if row is None:
            return None
        qid = int(row[0])
        self._cache[key] = qid
        return qid

    def _allocate(self, key: str) -> int:
        row = self.statements.execute("qname_max", self._select_max).one()
        current_max = row[0] if row is not None and row[0] is not None else 0
        qid = current_max + 1
        if qid > MAX_QNAME_ID:
            raise QNameLimitExceededError(MAX_QNAME_ID, qid)

        result = self.statements.execute("qname_insert", self._insert, [key, qid])
        if not result.was_applied:
            # Another process registered the name first; its row is returned
            existing = result.one()
            winner = int(existing.id)
            logger.info(
                f"[QNames] '{key}' already registered in {self.keyspace} with id {winner}"
            )
            self._cache[key] = winner
            return winner

        qname_allocations.inc()
        logger.info(f"[QNames] Allocated id {qid} for '{key}' in {self.keyspace}")
        self._cache[key] = qid
        return qid

    def cached(self) -> dict[str, int]:
        """Snapshot of the ids known to this process."""
        return dict(self._cache)
