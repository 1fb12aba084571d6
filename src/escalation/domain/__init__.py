"""
Escalation Domain Layer
=======================

Domain layer for the escalation module.

Contains:
- Entities: Ticket snapshots, the dismissal tracker, scan results
- Value Objects: TimeStatus, DashboardConfig
- Domain Services: Stateless business logic (TimeStatusEvaluator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from escalation.domain.entities import (
    Ticket,
    BatchDismissal,
    DismissalTracker,
    ScanResult,
    waiting_time_label,
)
from escalation.domain.value_objects import (
    TimeStatus,
    TimeStatusEvaluator,
    DashboardConfig,
    UNKNOWN_TIME_STATUS,
    evaluate_time_status,
    format_time_since,
    format_minutes,
)

__all__ = [
    # Entities
    "Ticket",
    "BatchDismissal",
    "DismissalTracker",
    "ScanResult",
    "waiting_time_label",
    # Value Objects & Services
    "TimeStatus",
    "TimeStatusEvaluator",
    "DashboardConfig",
    "UNKNOWN_TIME_STATUS",
    "evaluate_time_status",
    "format_time_since",
    "format_minutes",
]
