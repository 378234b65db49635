"""Observability infrastructure for structured logging and event reporting."""

from mediakeeper.infrastructure.observability.event_reporter import (
    DecisionEvent,
    LoggingEventReporter,
    TaskEvent,
)
from mediakeeper.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "DecisionEvent",
    "LoggingEventReporter",
    "TaskEvent",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
