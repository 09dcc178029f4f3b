"""
Prometheus metrics collection for payroll-audit

Counts salary updates, transaction outcomes and cascading deletes, and
times database operations.
"""
import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


salary_updates_total = Counter(
    name="payroll_salary_updates_total",
    documentation="Salary updates committed by the repository, by whether the salary changed",
    labelnames=["outcome"],  # outcome: changed, unchanged
    registry=REGISTRY,
)

transactions_total = Counter(
    name="payroll_transactions_total",
    documentation="Units of work finished, by outcome",
    labelnames=["outcome"],  # outcome: committed, rolled_back
    registry=REGISTRY,
)

departments_deleted_total = Counter(
    name="payroll_departments_deleted_total",
    documentation="Departments deleted",
    registry=REGISTRY,
)

employees_cascade_deleted_total = Counter(
    name="payroll_employees_cascade_deleted_total",
    documentation="Employees removed by ON DELETE CASCADE from a department delete",
    registry=REGISTRY,
)

operation_duration_seconds = Histogram(
    name="payroll_operation_duration_seconds",
    documentation="Time spent in database operations in seconds",
    labelnames=["operation"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text exposition format

    Returns:
        Metrics payload as bytes
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Content type for the Prometheus metrics endpoint"""
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Imported lazily so that importing this module never binds a port
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration("update_salary"):
            # do work
            pass
    """

    def __init__(self, operation: str, histogram: Histogram = operation_duration_seconds):
        self.histogram = histogram
        self.operation = operation
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(operation=self.operation).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def record_salary_update(changed: bool) -> None:
    """Count one salary update statement"""
    salary_updates_total.labels(outcome="changed" if changed else "unchanged").inc()


def record_transaction(committed: bool) -> None:
    """Count one finished unit of work"""
    transactions_total.labels(outcome="committed" if committed else "rolled_back").inc()


def record_department_deleted(cascaded_employees: int) -> None:
    """
    Count a department delete and the employees it cascaded to

    Args:
        cascaded_employees: Number of employee rows removed by the cascade
    """
    departments_deleted_total.inc()
    if cascaded_employees:
        employees_cascade_deleted_total.inc(cascaded_employees)
