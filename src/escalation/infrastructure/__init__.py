"""
Escalation Infrastructure Layer
================================

Infrastructure implementations for the escalation module:
- External: config watcher, scheduler, HTTP ticket loader, toast feed
"""

from escalation.infrastructure.external import (
    DashboardConfigManager,
    DashboardScheduler,
    HttpTicketLoader,
    Toast,
    ToastFeed,
    parse_ticket_rows,
)

__all__ = [
    "DashboardConfigManager",
    "DashboardScheduler",
    "HttpTicketLoader",
    "Toast",
    "ToastFeed",
    "parse_ticket_rows",
]
