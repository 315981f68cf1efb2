"""storage.py - Application storage over one Cassandra/Scylla keyspace.

AppStorage offers three kinds of data:

- records: mutable blobs addressed by (wsid, id)
- plog/wlog: append-only event logs addressed by partition or workspace
  and a 63-bit offset
- view records: blobs addressed by (view, wsid, p_key, c_cols), readable by
  clustering prefix or clustering range

All statements run at QUORUM unless a getter is called with an explicit
high/low consistency flag. Nothing here retries; the driver retries
transient errors and the host may re-issue.
"""

from __future__ import annotations

from typing import Any, Callable

from cassandra import ConsistencyLevel

from .clustering import is_absurd_range, range_condition, view_range
from .constants import FETCH_SIZE, LOW_MASK, PLOG, RECORDS, VIEW_RECORDS, WLOG
from .log_reader import CancelToken, LogReaderCallback, read_log
from .logger import get_logger
from .metrics import open_sessions, view_records_read
from .offsets import crack
from .qnames import QName, QNameRegistry
from .statements import StatementCache
from .utils import get_consistency

logger = get_logger(__name__)

ViewReaderCallback = Callable[[bytes, bytes], Any]


def safe_c_cols(value: bytes | None) -> bytes:
    """c_col is part of the primary key and can't be null."""
    if value is None:
        return b""
    return bytes(value)


def _consistency(high_consistency: bool | None) -> int:
    if high_consistency is None:
        return ConsistencyLevel.QUORUM
    return get_consistency(high_consistency)


class AppStorage:
    """Storage handle for a single application keyspace.

    Safe for concurrent use from several threads: the driver session is
    thread-safe and only QName allocation takes a lock.
    """

    def __init__(self, session: Any, keyspace: str) -> None:
        self.session = session
        self.keyspace = keyspace
        self.statements = StatementCache(session)
        self.qnames = QNameRegistry(self.statements, keyspace)
        self._closed = False
        open_sessions.inc()
        logger.info(f"[AppStorage] Opened storage for keyspace {keyspace}")

    # Records

    def get_record(
        self, wsid: int, record_id: int, high_consistency: bool | None = None
    ) -> bytes | None:
        """Return the record data, or None if there is no such record."""
        id_hi, id_low = crack(record_id)
        row = self.statements.execute(
            "get_record",
            f"select data from {self.keyspace}.{RECORDS} "
            "where wsid = ? and id_hi = ? and id_low = ?",
            [wsid, id_hi, id_low],
            consistency=_consistency(high_consistency),
        ).one()
        if row is None:
            return None
        return bytes(row[0] or b"")

    def put_record(self, wsid: int, record_id: int, data: bytes) -> None:
        id_hi, id_low = crack(record_id)
        self.statements.execute(
            "put_record",
            f"insert into {self.keyspace}.{RECORDS} (wsid, id_hi, id_low, data) "
            "values (?, ?, ?, ?)",
            [wsid, id_hi, id_low, bytes(data)],
        )

    # Logs

    def put_plog_event(self, partition: int, offset: int, event: bytes) -> None:
        offset_hi, offset_low = crack(offset)
        self.statements.execute(
            "put_plog_event",
            f"insert into {self.keyspace}.{PLOG} "
            "(partition_id, offset_hi, offset_low, event) values (?, ?, ?, ?)",
            [partition, offset_hi, offset_low, bytes(event)],
        )

    def put_wlog_event(self, wsid: int, offset: int, event: bytes) -> None:
        offset_hi, offset_low = crack(offset)
        self.statements.execute(
            "put_wlog_event",
            f"insert into {self.keyspace}.{WLOG} "
            "(wsid, offset_hi, offset_low, event) values (?, ?, ?, ?)",
            [wsid, offset_hi, offset_low, bytes(event)],
        )

    def read_plog(
        self,
        cancel: CancelToken | None,
        partition: int,
        offset: int,
        to_read_count: int,
        cb: LogReaderCallback,
    ) -> None:
        """Read `to_read_count` events (or READ_TO_THE_END) of a partition log."""
        read_log(
            cancel,
            offset,
            to_read_count,
            self._log_query(PLOG, "partition_id", partition),
            cb,
            log_name=PLOG,
        )

    def read_wlog(
        self,
        cancel: CancelToken | None,
        wsid: int,
        offset: int,
        to_read_count: int,
        cb: LogReaderCallback,
    ) -> None:
        """Read `to_read_count` events (or READ_TO_THE_END) of a workspace log."""
        read_log(
            cancel,
            offset,
            to_read_count,
            self._log_query(WLOG, "wsid", wsid),
            cb,
            log_name=WLOG,
        )

    def _log_query(self, table: str, partition_col: str, partition_value: int):
        def read_query(part: int, clust_from: int, clust_to: int):
            query = (
                f"select offset_low, event from {self.keyspace}.{table} "
                f"where {partition_col} = ? and offset_hi = ?"
            )
            params: list[int] = [partition_value, part]
            if clust_from > 0:
                query += " and offset_low >= ?"
                params.append(clust_from)
            if clust_to < LOW_MASK:
                query += " and offset_low <= ?"
                params.append(clust_to)
            query += " order by offset_low"
            return self.statements.execute(
                f"read_{table}", query, params, fetch_size=FETCH_SIZE
            )

        return read_query

    # Views

    def put_view_record(
        self,
        view: QName | str,
        wsid: int,
        p_key: bytes,
        c_cols: bytes | None,
        value: bytes,
    ) -> None:
        qid = self.qnames.get_id(view)
        self.statements.execute(
            "put_view_record",
            f"insert into {self.keyspace}.{VIEW_RECORDS} "
            "(wsid, qname, p_key, c_col, value) values (?, ?, ?, ?, ?)",
            [wsid, qid, bytes(p_key), safe_c_cols(c_cols), bytes(value)],
        )

    def get_view_record(
        self,
        view: QName | str,
        wsid: int,
        p_key: bytes,
        c_cols: bytes | None,
        high_consistency: bool | None = None,
    ) -> bytes | None:
        """Return the view value, or None if there is no such view record."""
        qid = self.qnames.get_id(view)
        row = self.statements.execute(
            "get_view_record",
            f"select value from {self.keyspace}.{VIEW_RECORDS} "
            "where wsid = ? and qname = ? and p_key = ? and c_col = ?",
            [wsid, qid, bytes(p_key), safe_c_cols(c_cols)],
            consistency=_consistency(high_consistency),
        ).one()
        if row is None:
            return None
        return bytes(row[0] or b"")

    def read_view(
        self,
        cancel: CancelToken | None,
        view: QName | str,
        wsid: int,
        p_key: bytes,
        partial_c_cols: bytes | None,
        cb: ViewReaderCallback,
    ) -> None:
        """Read every view record whose c_cols start with `partial_c_cols`."""
        start, finish = view_range(partial_c_cols)
        self.read_view_range(cancel, view, wsid, p_key, start, finish, cb)

    def read_view_range(
        self,
        cancel: CancelToken | None,
        view: QName | str,
        wsid: int,
        p_key: bytes,
        start_c_cols: bytes | None,
        finish_c_cols: bytes | None,
        cb: ViewReaderCallback,
    ) -> None:
        """Read view records with start_c_cols <= c_cols < finish_c_cols.

        An empty bound leaves that side of the range open.
        """
        if is_absurd_range(start_c_cols, finish_c_cols):
            return

        qid = self.qnames.get_id(view)
        condition, range_params = range_condition(start_c_cols, finish_c_cols)
        rows = self.statements.execute(
            "read_view",
            f"select c_col, value from {self.keyspace}.{VIEW_RECORDS} "
            f"where wsid = ? and qname = ? and p_key = ?{condition}",
            [wsid, qid, bytes(p_key), *range_params],
            fetch_size=FETCH_SIZE,
        )
        read = 0
        try:
            for c_col, value in rows:
                cb(bytes(c_col or b""), bytes(value or b""))
                read += 1
                if cancel is not None and cancel.is_set():
                    logger.debug("[AppStorage] View read cancelled")
                    return
        finally:
            if read:
                view_records_read.inc(read)

    # QNames

    def get_qname_id(self, name: QName | str) -> int:
        return self.qnames.get_id(name)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.session.shutdown()
        open_sessions.dec()
        logger.info(f"[AppStorage] Closed storage for keyspace {self.keyspace}")

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"AppStorage(keyspace={self.keyspace!r})"
