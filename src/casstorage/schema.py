"""schema.py - Keyspace and table DDL for an application keyspace.

Every statement is `if not exists`, so running the setup against an existing
keyspace changes nothing.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from .constants import ATTEMPTS, PLOG, QNAMES, RECORDS, RETRY_DELAY, VIEW_RECORDS, WLOG
from .exceptions import SetupError
from .logger import get_logger
from .utils import do_with_attempts

logger = get_logger(__name__)


class TableDef(NamedTuple):
    name: str
    cql: str


TABLES: tuple[TableDef, ...] = (
    TableDef(
        RECORDS,
        """(
            wsid        bigint,
            id_hi       bigint,
            id_low      smallint,
            data        blob,
            primary key ((wsid, id_hi), id_low)
        )""",
    ),
    TableDef(
        PLOG,
        """(
            partition_id    smallint,
            offset_hi       bigint,
            offset_low      smallint,
            event           blob,
            primary key ((partition_id, offset_hi), offset_low)
        )""",
    ),
    TableDef(
        WLOG,
        """(
            wsid        bigint,
            offset_hi   bigint,
            offset_low  smallint,
            event       blob,
            primary key ((wsid, offset_hi), offset_low)
        )""",
    ),
    TableDef(
        VIEW_RECORDS,
        """(
            wsid    bigint,
            qname   smallint,
            p_key   blob,
            c_col   blob,
            value   blob,
            primary key ((wsid, qname, p_key), c_col)
        )""",
    ),
    TableDef(
        QNAMES,
        """(
            name    text,
            id      int,
            primary key (name)
        )""",
    ),
)


def keyspace_ddl(keyspace: str, replication_factor: int) -> str:
    return (
        f"create keyspace if not exists {keyspace} with replication = "
        f"{{'class': 'SimpleStrategy', 'replication_factor': {replication_factor}}}"
    )


def table_ddl(keyspace: str, table: TableDef) -> str:
    return f"create table if not exists {keyspace}.{table.name} {table.cql}"


def create_schema(
    session: Any,
    keyspace: str,
    replication_factor: int,
    app_name: str | None = None,
    attempts: int = ATTEMPTS,
    delay: float = RETRY_DELAY,
) -> None:
    """Create the keyspace and the fixed table set, retrying each statement."""
    try:
        do_with_attempts(
            attempts, delay, lambda: session.execute(keyspace_ddl(keyspace, replication_factor))
        )
    except Exception as ex:
        raise SetupError(keyspace, app_name, str(ex)) from ex
    logger.info(f"[Schema] Keyspace {keyspace} ready (replication_factor={replication_factor})")

    for table in TABLES:
        ddl = table_ddl(keyspace, table)
        try:
            do_with_attempts(attempts, delay, lambda: session.execute(ddl))
        except Exception as ex:
            raise SetupError(f"{keyspace}.{table.name}", app_name, str(ex)) from ex
        logger.debug(f"[Schema] Table {keyspace}.{table.name} ready")
