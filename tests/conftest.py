"""Shared fixtures: an in-memory stand-in for a Cassandra cluster.

FakeCassandra executes the CQL subset issued by casstorage (keyspace/table
DDL, prepared inserts and selects with =, >=, <=, <, > conditions,
`order by`, `max()` and `if not exists`) and keeps rows per table sorted by
clustering columns. FakeSession records every executed statement together
with its bound values and consistency level.
"""

import re
import threading
import time
from collections import namedtuple

import pytest

from casstorage.schema import create_schema
from casstorage.storage import AppStorage

TEST_KEYSPACE = "testspace_0"


class FakeInvalidRequest(Exception):
    """Query rejected by the fake cluster."""


class FakeNoHostAvailable(Exception):
    """Fake cluster unreachable."""


_CREATE_KEYSPACE = re.compile(r"^create keyspace if not exists (\w+) with replication = (.+)$", re.S)
_CREATE_TABLE = re.compile(r"^create table if not exists (\w+)\.(\w+) \((.*)\)$", re.S)
_INSERT = re.compile(
    r"^insert into (\w+)\.(\w+) \(([^)]*)\) values \(([^)]*)\)( if not exists)?$"
)
_SELECT = re.compile(
    r"^select (.+?) from (\w+)\.(\w+)(?: where (.+?))?(?: order by (\w+))?$"
)
_CONDITION = re.compile(r"^(\w+) (=|>=|<=|<|>) \?$")
_PRIMARY_KEY = re.compile(r"primary key\s*\((.*)\)\s*$", re.S)

_OPS = {
    "=": lambda a, b: a == b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
}


class FakeTable:
    def __init__(self, columns, partition_cols, clustering_cols):
        self.columns = columns
        self.partition_cols = partition_cols
        self.clustering_cols = clustering_cols
        self.rows = {}

    def key_of(self, row):
        return tuple(row[c] for c in self.partition_cols + self.clustering_cols)

    def sorted_rows(self):
        return sorted(
            self.rows.values(), key=lambda r: tuple(r[c] for c in self.clustering_cols)
        )


class FakeResultSet:
    def __init__(self, rows, was_applied=None, fail_after=None, error=None):
        self._rows = list(rows)
        self._was_applied = was_applied
        self._fail_after = fail_after
        self._error = error

    def __iter__(self):
        for n, row in enumerate(self._rows):
            if self._fail_after is not None and n >= self._fail_after:
                raise self._error
            yield row
        if self._fail_after is not None and self._fail_after >= len(self._rows):
            raise self._error

    def one(self):
        return self._rows[0] if self._rows else None

    @property
    def was_applied(self):
        if self._was_applied is None:
            raise RuntimeError("not a conditional statement")
        return self._was_applied


class FakeCassandra:
    """Shared cluster state; several sessions may point at one instance."""

    def __init__(self):
        self.keyspaces = {}
        self.tables = {}
        self._lock = threading.RLock()

    def table(self, keyspace, name):
        table = self.tables.get((keyspace, name))
        if table is None:
            raise FakeInvalidRequest(f"unconfigured table {keyspace}.{name}")
        return table

    def run(self, query, values):
        query = " ".join(query.split()) if not query.startswith("create table") else query
        with self._lock:
            m = _CREATE_KEYSPACE.match(query)
            if m:
                self.keyspaces.setdefault(m.group(1), m.group(2))
                return FakeResultSet([])
            m = _CREATE_TABLE.match(query)
            if m:
                return self._create_table(m.group(1), m.group(2), m.group(3))
            m = _INSERT.match(query)
            if m:
                return self._insert(m, values)
            m = _SELECT.match(query)
            if m:
                return self._select(m, values)
        raise FakeInvalidRequest(f"unsupported statement: {query}")

    def _create_table(self, keyspace, name, body):
        if keyspace not in self.keyspaces:
            raise FakeInvalidRequest(f"Keyspace {keyspace} does not exist")
        if (keyspace, name) in self.tables:
            return FakeResultSet([])
        body = body.strip()
        pk = _PRIMARY_KEY.search(body)
        assert pk, f"no primary key in {body}"
        spec = pk.group(1).strip()
        if spec.startswith("("):
            close = spec.index(")")
            partition = [c.strip() for c in spec[1:close].split(",")]
            rest = spec[close + 1 :].strip(" ,")
            clustering = [c.strip() for c in rest.split(",") if c.strip()]
        else:
            parts = [c.strip() for c in spec.split(",")]
            partition, clustering = parts[:1], parts[1:]
        columns = []
        for line in body[: pk.start()].split(","):
            line = line.strip()
            if line:
                columns.append(line.split()[0])
        self.tables[(keyspace, name)] = FakeTable(columns, partition, clustering)
        return FakeResultSet([])

    def _insert(self, m, values):
        keyspace, name, cols, placeholders, if_not_exists = m.groups()
        table = self.table(keyspace, name)
        cols = [c.strip() for c in cols.split(",")]
        assert len(cols) == len(values) == len(placeholders.split(","))
        row = dict(zip(cols, values))
        for c in table.partition_cols + table.clustering_cols:
            if row.get(c) is None:
                raise FakeInvalidRequest(f"Invalid null value for key column {c}")
        key = table.key_of(row)
        if if_not_exists:
            existing = table.rows.get(key)
            if existing is not None:
                Row = namedtuple("Row", ["applied"] + table.columns)
                return FakeResultSet(
                    [Row(False, *(existing.get(c) for c in table.columns))],
                    was_applied=False,
                )
            table.rows[key] = row
            return FakeResultSet([namedtuple("Row", ["applied"])(True)], was_applied=True)
        table.rows.setdefault(key, {}).update(row)
        return FakeResultSet([])

    def _select(self, m, values):
        columns, keyspace, name, where, order_by = m.groups()
        table = self.table(keyspace, name)
        conditions = []
        if where:
            for cond in where.split(" and "):
                cm = _CONDITION.match(cond.strip())
                if not cm:
                    raise FakeInvalidRequest(f"unsupported condition: {cond}")
                conditions.append((cm.group(1), _OPS[cm.group(2)]))
        assert len(conditions) == len(values), (conditions, values)
        if order_by:
            assert order_by in table.clustering_cols
        rows = [
            r
            for r in table.sorted_rows()
            if all(op(r[col], v) for (col, op), v in zip(conditions, values))
        ]
        columns = [c.strip() for c in columns.split(",")]
        agg = re.match(r"^max\((\w+)\)$", columns[0])
        if agg:
            found = [r[agg.group(1)] for r in rows]
            Row = namedtuple("Row", [f"system_max_{agg.group(1)}"])
            return FakeResultSet([Row(max(found) if found else None)])
        Row = namedtuple("Row", columns)
        return FakeResultSet([Row(*(r.get(c) for c in columns)) for r in rows])


class FakePrepared:
    def __init__(self, query):
        self.query_string = query
        self.consistency_level = None
        self.fetch_size = None

    def bind(self, values):
        return FakeBound(self, values)


class FakeBound:
    def __init__(self, prepared, values):
        self.prepared_statement = prepared
        self.values = list(values)
        self.consistency_level = prepared.consistency_level
        self.fetch_size = prepared.fetch_size


Executed = namedtuple("Executed", ["query", "values", "consistency", "fetch_size"])


class FakeSession:
    def __init__(self, db, latency=0.0):
        self.db = db
        self.latency = latency
        self.executed = []
        self.prepared = []
        self.is_shutdown = False
        self._failures = []
        self._lock = threading.Lock()

    def inject(self, pattern, error, times=1, after_rows=None):
        """Make the next `times` statements matching `pattern` fail.

        With `after_rows` the statement succeeds but its result set raises
        `error` after yielding that many rows.
        """
        self._failures.append([re.compile(pattern), error, times, after_rows])

    def prepare(self, query):
        with self._lock:
            self.prepared.append(query)
        return FakePrepared(query)

    def execute(self, statement, parameters=None):
        if self.is_shutdown:
            raise FakeNoHostAvailable("session is shut down")
        if isinstance(statement, str):
            query, values, consistency, fetch_size = statement, list(parameters or []), None, None
        else:
            query = statement.prepared_statement.query_string
            values = statement.values
            consistency = statement.consistency_level
            fetch_size = statement.fetch_size
        with self._lock:
            self.executed.append(Executed(query, values, consistency, fetch_size))
            failure = self._take_failure(query)
        if self.latency:
            time.sleep(self.latency)
        if failure is not None and failure[3] is None:
            raise failure[1]
        result = self.db.run(query, values)
        if failure is not None:
            return FakeResultSet(list(result), fail_after=failure[3], error=failure[1])
        return result

    def _take_failure(self, query):
        for failure in self._failures:
            if failure[2] > 0 and failure[0].search(query):
                failure[2] -= 1
                return failure
        return None

    def queries(self, pattern):
        """Executed statements whose text matches `pattern`."""
        return [e for e in self.executed if re.search(pattern, e.query)]

    def shutdown(self):
        self.is_shutdown = True


class FakeCluster:
    def __init__(self, db, connect_error=None, failures=(), **kwargs):
        self.db = db
        self.kwargs = kwargs
        self.connect_error = connect_error
        self.failures = list(failures)
        self.sessions = []
        self.is_shutdown = False

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        session = FakeSession(self.db)
        for pattern, error, times in self.failures:
            session.inject(pattern, error, times=times)
        self.sessions.append(session)
        return session

    def shutdown(self):
        self.is_shutdown = True


class ClusterFactory:
    """Stands in for `cassandra.cluster.Cluster` inside the provider.

    Settings made before the provider is built apply to every cluster and
    session it creates.
    """

    def __init__(self, db):
        self.db = db
        self.created = []
        self.connect_error = None
        self.failures = []

    def inject(self, pattern, error, times=1):
        """Fail the first `times` statements matching `pattern` on each new session."""
        self.failures.append((pattern, error, times))

    def __call__(self, **kwargs):
        cluster = FakeCluster(
            self.db, connect_error=self.connect_error, failures=self.failures, **kwargs
        )
        self.created.append(cluster)
        return cluster

    @property
    def last(self):
        return self.created[-1]


@pytest.fixture
def fake_db():
    return FakeCassandra()


@pytest.fixture
def session(fake_db):
    s = FakeSession(fake_db)
    create_schema(s, TEST_KEYSPACE, 1)
    s.executed.clear()
    return s


@pytest.fixture
def storage(session):
    st = AppStorage(session, TEST_KEYSPACE)
    try:
        yield st
    finally:
        st.close()


@pytest.fixture
def fake_clusters(monkeypatch, fake_db):
    """Patch the driver Cluster used by the provider."""
    factory = ClusterFactory(fake_db)
    monkeypatch.setattr("casstorage.provider.Cluster", factory)
    return factory


@pytest.fixture
def make_session(fake_db):
    def _make(latency=0.0, keyspace=TEST_KEYSPACE):
        s = FakeSession(fake_db, latency=latency)
        create_schema(s, keyspace, 1)
        s.executed.clear()
        return s

    return _make
