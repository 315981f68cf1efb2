"""metrics.py - Prometheus metrics for the application storage adapter"""

from __future__ import annotations

from typing import Any

from prometheus_client import CollectorRegistry, Counter, Gauge


def create_storage_metrics(registry: CollectorRegistry | None = None) -> dict[str, Any]:
    """Create the storage metric set in `registry` (global registry if None)."""
    kwargs = {} if registry is None else {"registry": registry}
    operations = Counter(
        "casstorage_operations_total",
        "Total number of storage operations issued to the cluster",
        ["operation"],
        **kwargs,
    )
    operation_errors = Counter(
        "casstorage_operation_errors_total",
        "Total number of storage operations that raised",
        ["operation"],
        **kwargs,
    )
    log_events_read = Counter(
        "casstorage_log_events_read_total",
        "Total number of log events delivered to readers",
        ["log"],
        **kwargs,
    )
    view_records_read = Counter(
        "casstorage_view_records_read_total",
        "Total number of view records delivered to readers",
        **kwargs,
    )
    qname_allocations = Counter(
        "casstorage_qname_allocations_total",
        "Total number of QName ids allocated by this process",
        **kwargs,
    )
    setup_retries = Counter(
        "casstorage_setup_retries_total",
        "Total number of retried setup (DDL) attempts",
        **kwargs,
    )
    open_sessions = Gauge(
        "casstorage_open_sessions",
        "Number of open application storage sessions",
        **kwargs,
    )
    return {
        "operations": operations,
        "operation_errors": operation_errors,
        "log_events_read": log_events_read,
        "view_records_read": view_records_read,
        "qname_allocations": qname_allocations,
        "setup_retries": setup_retries,
        "open_sessions": open_sessions,
    }


# Default global metrics (for production)
_default_metrics = create_storage_metrics()
operations = _default_metrics["operations"]
operation_errors = _default_metrics["operation_errors"]
log_events_read = _default_metrics["log_events_read"]
view_records_read = _default_metrics["view_records_read"]
qname_allocations = _default_metrics["qname_allocations"]
setup_retries = _default_metrics["setup_retries"]
open_sessions = _default_metrics["open_sessions"]


def get_storage_prometheus_metrics(registry: CollectorRegistry) -> list[Any]:
    """Get a fresh set of storage metrics for an isolated registry.

    The defaults above already live in the global registry; registering
    them there a second time raises.
    """
    return list(create_storage_metrics(registry=registry).values())
