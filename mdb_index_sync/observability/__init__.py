"""
Observability components.

Provides contextual logging and metrics collection.
"""

from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    get_logging_context,
    reset_entity_context,
    set_correlation_id,
    set_entity_context,
)
from .metrics import MetricsCollector, OperationMetrics, get_metrics_collector, record_operation

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_entity_context",
    "reset_entity_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
]
