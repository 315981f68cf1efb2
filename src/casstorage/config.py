"""config.py - Cluster and application parameters for casstorage."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping

from .exceptions import ConfigError

ENV_PREFIX = "CASSTORAGE_"

_KEYSPACE = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,47}$")


@dataclass(frozen=True)
class CassandraParams:
    """Cluster connection parameters shared by all applications.

    Attributes:
        hosts: Comma separated list of contact points
        port: Native protocol port, 0 means the driver default (9042)
        username: Login for password authentication, empty disables auth
        password: Password for `username`
    """

    hosts: str = "127.0.0.1"
    port: int = 0
    username: str = ""
    password: str = ""

    def contact_points(self) -> list[str]:
        points = [h.strip() for h in self.hosts.split(",") if h.strip()]
        if not points:
            raise ConfigError(f"No hosts in {self.hosts!r}")
        return points

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None
    ) -> "CassandraParams":
        """Read <prefix>HOSTS, PORT, USERNAME and PASSWORD; unset keys keep defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        port_value = env.get(f"{prefix}PORT")
        port = defaults.port
        if port_value:
            try:
                port = int(port_value)
            except ValueError as ex:
                raise ConfigError(f"{prefix}PORT must be an integer, got {port_value!r}") from ex
        if port < 0:
            raise ConfigError(f"{prefix}PORT must be non-negative, got {port}")
        return cls(
            hosts=env.get(f"{prefix}HOSTS", defaults.hosts),
            port=port,
            username=env.get(f"{prefix}USERNAME", defaults.username),
            password=env.get(f"{prefix}PASSWORD", defaults.password),
        )


@dataclass(frozen=True)
class AppCassandraParams:
    """Per-application keyspace parameters."""

    keyspace: str
    replication_factor: int = 1

    def validate(self) -> None:
        # The keyspace name is formatted into every statement
        if not _KEYSPACE.match(self.keyspace):
            raise ConfigError(f"Invalid keyspace name {self.keyspace!r}")
        if self.replication_factor < 1:
            raise ConfigError(
                f"replication_factor must be >= 1, got {self.replication_factor}"
            )
