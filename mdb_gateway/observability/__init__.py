"""
Observability components.

Provides contextual logging, metrics collection and health checks.
"""

from .health import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_connection_state,
    check_mongodb_health,
)
from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    clear_tenant_context,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    set_correlation_id,
    set_tenant_context,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_tenant_context",
    "clear_tenant_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
    # Health
    "HealthStatus",
    "HealthCheckResult",
    "HealthChecker",
    "check_mongodb_health",
    "check_connection_state",
]
