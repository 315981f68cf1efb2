"""provider.py - Storage provider: cluster setup and per-application storages.

Usage:
    provider, release = provide(
        CassandraParams(hosts="10.0.0.1,10.0.0.2"),
        {"airs-bp": AppCassandraParams(keyspace="airsbp", replication_factor=3)},
    )
    try:
        storage = provider.app_storage("airs-bp")
        storage.put_record(wsid, record_id, data)
    finally:
        release()
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from cassandra import ConsistencyLevel
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile

from .config import AppCassandraParams, CassandraParams
from .constants import ATTEMPTS, CONNECTION_TIMEOUT, RETRY_DELAY
from .exceptions import AppNotFoundError, ConfigError, SetupError
from .logger import get_logger
from .schema import create_schema
from .storage import AppStorage

logger = get_logger(__name__)


def build_cluster(params: CassandraParams) -> Cluster:
    """Create (but do not connect) the driver cluster for `params`."""
    kwargs: dict[str, Any] = {
        "contact_points": params.contact_points(),
        "connect_timeout": CONNECTION_TIMEOUT,
        "execution_profiles": {
            EXEC_PROFILE_DEFAULT: ExecutionProfile(
                consistency_level=ConsistencyLevel.QUORUM
            )
        },
    }
    if params.port > 0:
        kwargs["port"] = params.port
    if params.username:
        kwargs["auth_provider"] = PlainTextAuthProvider(
            username=params.username, password=params.password
        )
    return Cluster(**kwargs)


class AppStorageProvider:
    """Holds one session-backed AppStorage per configured application.

    The application map is built in the constructor and read-only
    afterwards. Construction fails with SetupError if any application
    can't be brought up; storages opened so far are closed again.
    """

    def __init__(
        self,
        params: CassandraParams,
        apps: Mapping[str, AppCassandraParams],
        attempts: int = ATTEMPTS,
        delay: float = RETRY_DELAY,
    ) -> None:
        for app_name, app_params in apps.items():
            try:
                app_params.validate()
            except ConfigError as ex:
                raise SetupError(app_params.keyspace, app_name, str(ex)) from ex

        self.params = params
        self.cluster = build_cluster(params)
        self._storages: dict[str, AppStorage] = {}
        self._released = False
        logger.info(
            f"[Provider] Cluster configured for {params.contact_points()} "
            f"(port={params.port or 'default'}, apps={len(apps)})"
        )
        try:
            for app_name, app_params in apps.items():
                self._storages[app_name] = self._new_storage(
                    app_name, app_params, attempts, delay
                )
        except Exception:
            self.release()
            raise

    def _new_storage(
        self, app_name: str, app_params: AppCassandraParams, attempts: int, delay: float
    ) -> AppStorage:
        try:
            session = self.cluster.connect()
        except Exception as ex:
            raise SetupError(
                app_params.keyspace, app_name, f"can't create session: {ex}"
            ) from ex
        try:
            create_schema(
                session,
                app_params.keyspace,
                app_params.replication_factor,
                app_name=app_name,
                attempts=attempts,
                delay=delay,
            )
        except Exception:
            session.shutdown()
            raise
        logger.info(f"[Provider] Application '{app_name}' -> keyspace {app_params.keyspace}")
        return AppStorage(session, app_params.keyspace)

    def app_storage(self, app_name: str) -> AppStorage:
        storage = self._storages.get(app_name)
        if storage is None:
            raise AppNotFoundError(app_name)
        return storage

    def apps(self) -> list[str]:
        return sorted(self._storages)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Close every application session and shut the cluster down."""
        if self._released:
            return
        self._released = True
        for storage in self._storages.values():
            storage.close()
        self.cluster.shutdown()
        logger.info("[Provider] Released")

    def __enter__(self) -> "AppStorageProvider":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def provide(
    params: CassandraParams, apps: Mapping[str, AppCassandraParams]
) -> tuple[AppStorageProvider, Callable[[], None]]:
    """Build a provider for `apps` and return it with its cleanup hook."""
    provider = AppStorageProvider(params, apps)
    return provider, provider.release
