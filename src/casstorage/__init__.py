"""casstorage - Application storage over a Cassandra/Scylla cluster."""

from .config import AppCassandraParams, CassandraParams
from .constants import PARTITION_BITS, READ_TO_THE_END
from .exceptions import (
    AppNotFoundError,
    CasStorageError,
    ConfigError,
    InvalidQNameError,
    QNameError,
    QNameLimitExceededError,
    SetupError,
)
from .offsets import crack, uncrack
from .provider import AppStorageProvider, provide
from .qnames import QName
from .storage import AppStorage

__all__ = [
    "AppCassandraParams",
    "CassandraParams",
    "PARTITION_BITS",
    "READ_TO_THE_END",
    "AppNotFoundError",
    "CasStorageError",
    "ConfigError",
    "InvalidQNameError",
    "QNameError",
    "QNameLimitExceededError",
    "SetupError",
    "crack",
    "uncrack",
    "AppStorageProvider",
    "provide",
    "QName",
    "AppStorage",
]
