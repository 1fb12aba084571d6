"""
Escalation Application Layer
=============================

Application layer for the escalation module.

Contains:
- Services: Escalation monitor, snapshot store, display board
- DTOs: Data transfer objects for the feed and API serialization

This layer depends on the domain layer and collaborator interfaces,
but not on concrete infrastructure implementations.
"""

from escalation.application.dto import (
    TicketRecordDTO,
    TicketTimeResponse,
    BoardResponse,
    ActiveAlertResponse,
    DismissResponse,
    DismissAllResponse,
    ToastResponse,
)
from escalation.application.services import (
    AlertEscalationMonitor,
    TicketSnapshotStore,
    DashboardBoard,
    IDashboardConfigProvider,
    ITicketLoader,
    IToastSink,
    dismissal_message,
)

__all__ = [
    # DTOs
    "TicketRecordDTO",
    "TicketTimeResponse",
    "BoardResponse",
    "ActiveAlertResponse",
    "DismissResponse",
    "DismissAllResponse",
    "ToastResponse",
    # Services
    "AlertEscalationMonitor",
    "TicketSnapshotStore",
    "DashboardBoard",
    "dismissal_message",
    # Collaborator Interfaces
    "IDashboardConfigProvider",
    "ITicketLoader",
    "IToastSink",
]
