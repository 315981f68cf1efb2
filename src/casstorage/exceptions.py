"""exceptions.py - Custom exception hierarchy for casstorage.

Defines exceptions for:
- Configuration errors (hosts, ports, keyspace names)
- Application lookup on the storage provider
- Keyspace and table setup failures
- QName registry errors

Row absence is never an error: getters return None. Transport and query
errors raised by the cassandra driver propagate unchanged.
"""

from __future__ import annotations


class CasStorageError(Exception):
    """Base exception for all casstorage errors."""

    pass


class ConfigError(CasStorageError):
    """Raised when cluster or application parameters are invalid.

    Examples:
        - Empty host list
        - Non-numeric port in the environment
        - Keyspace name that is not a plain CQL identifier
    """

    pass


class AppNotFoundError(CasStorageError):
    """Raised when the provider has no storage for the requested application."""

    def __init__(self, app_name: str):
        self.app_name = app_name
        super().__init__(f"Application '{app_name}' not found")


class SetupError(CasStorageError):
    """Raised when keyspace or table creation fails after all attempts.

    Fatal to provider construction.
    """

    def __init__(self, name: str, app_name: str | None = None, reason: str = ""):
        self.name = name
        self.app_name = app_name
        self.reason = reason
        where = f" for application '{app_name}'" if app_name else ""
        msg = f"Can't create '{name}'{where}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class QNameError(CasStorageError):
    """Base exception for QName registry errors."""

    pass


class InvalidQNameError(QNameError):
    """Raised when a qualified name does not match `pkg.Entity`."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid QName '{name}': {reason}")


class QNameLimitExceededError(QNameError):
    """Raised when allocating a new id would leave the smallint range of
    view_records.qname.
    """

    def __init__(self, limit: int, attempted: int):
        self.limit = limit
        self.attempted = attempted
        super().__init__(
            f"QName id limit exceeded: attempted to allocate id {attempted}, limit is {limit}"
        )
