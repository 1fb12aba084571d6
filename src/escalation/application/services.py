"""
Escalation Application Services
================================

Application services orchestrate business logic and coordinate between
domain entities and the external collaborators (ticket source, presentation).

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions, not concrete implementations
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from escalation.domain import (
    Ticket,
    BatchDismissal,
    DismissalTracker,
    ScanResult,
    DashboardConfig,
    TimeStatusEvaluator,
    format_time_since,
    waiting_time_label,
)
from escalation.application.dto import TicketTimeResponse
from core import ApplicationException
from shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

SLOW_RELOAD_MS = 2000


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class IDashboardConfigProvider(ABC):
    """Interface for dashboard configuration access."""

    @abstractmethod
    def get_config(self) -> DashboardConfig:
        """Get current dashboard configuration."""


class ITicketLoader(ABC):
    """Interface for reloading the ticket collection from the system of record."""

    @abstractmethod
    async def load(self) -> List[Ticket]:
        """Fetch the full current ticket list, in fetch order."""


class IToastSink(ABC):
    """Interface for non-blocking advisory messages shown to the operator."""

    @abstractmethod
    def push(self, message: str, level: str = "info") -> None:
        """Queue a message for display."""


# ========== Application Services ==========

class AlertEscalationMonitor:
    """
    Selects at most one waiting ticket for the blocking full-screen alert.

    The active alert is re-derived from scratch on every scan: the first
    awaiting ticket in fetch order that has waited at least the full-screen
    threshold and is not dismissed. Selection is first-match, not
    longest-waiting.
    """

    def __init__(
        self,
        config_provider: IDashboardConfigProvider,
        dismissals: Optional[DismissalTracker] = None,
        toasts: Optional[IToastSink] = None
    ):
        self._config_provider = config_provider
        self._dismissals = dismissals if dismissals is not None else DismissalTracker()
        self._toasts = toasts
        self._active: Optional[Ticket] = None
        self._last_scan: Optional[ScanResult] = None

    @property
    def dismissals(self) -> DismissalTracker:
        return self._dismissals

    @property
    def active_alert(self) -> Optional[Ticket]:
        """Ticket currently shown full screen."""
        return self._active

    @property
    def last_scan(self) -> Optional[ScanResult]:
        return self._last_scan

    def scan(self, tickets: Sequence[Ticket], now: datetime) -> ScanResult:
        """
        Recompute the active alert.

        Args:
            tickets: Current snapshot in fetch order
            now: Evaluation instant

        Returns:
            ScanResult with the selected ticket (or None) and whether it
            differs from the previously active one.
        """
        config = self._config_provider.get_config()
        previous_id = self._active.id if self._active else None

        selected: Optional[Ticket] = None
        candidates = 0
        for ticket in tickets:
            if not ticket.is_awaiting:
                continue
            candidates += 1
            time_info = TimeStatusEvaluator.evaluate(
                ticket.created_at,
                now,
                config.warning_time_minutes,
                config.critical_time_minutes
            )
            if (
                time_info.minutes >= config.full_screen_alert_minutes
                and not self._dismissals.is_dismissed(ticket.id)
            ):
                logger.info(
                    "Critical ticket found",
                    extra={"ticket_id": ticket.id, "minutes": time_info.minutes}
                )
                selected = ticket
                break

        self._active = selected
        newly_raised = selected is not None and selected.id != previous_id
        result = ScanResult(
            active=selected,
            newly_raised=newly_raised,
            scanned_at=now,
            candidates=candidates
        )
        self._last_scan = result

        logger.debug(
            "Escalation scan finished",
            extra={
                "awaiting": candidates,
                "active_ticket_id": result.active_id,
                "newly_raised": newly_raised
            }
        )
        return result

    def close_alert(self, ticket_id: str) -> bool:
        """
        Dismiss one ticket and hide the full-screen alert.

        Returns:
            True if the ticket was not dismissed before.
        """
        added = self._dismissals.dismiss(ticket_id)
        self._active = None
        logger.info("Alert dismissed", extra={"ticket_id": ticket_id, "newly_dismissed": added})
        return added

    def dismiss_all_waiting(self, tickets: Sequence[Ticket]) -> BatchDismissal:
        """
        Dismiss every ticket currently awaiting attendance.

        The operator acknowledgment counts the waiting tickets in the batch,
        including ones that were already dismissed.
        """
        waiting_ids = [ticket.id for ticket in tickets if ticket.is_awaiting]
        outcome = self._dismissals.dismiss_all(waiting_ids)
        self._active = None

        if self._toasts is not None:
            self._toasts.push(dismissal_message(outcome.requested), level="success")

        logger.info(
            "Waiting tickets dismissed",
            extra={
                "requested": outcome.requested,
                "newly_added": outcome.newly_added,
                "total_dismissed": len(self._dismissals)
            }
        )
        return outcome


def dismissal_message(count: int) -> str:
    """Operator acknowledgment for a bulk dismissal."""
    noun = "alert was" if count == 1 else "alerts were"
    return f"{count} {noun} dismissed"


class TicketSnapshotStore:
    """
    Holds the latest ticket snapshot.

    ``refresh`` is the zero-argument refresh callback handed to the realtime
    bridge; every call replaces the snapshot wholesale. Reload failures are
    logged and leave the previous snapshot in place.
    """

    def __init__(self, loader: ITicketLoader):
        self._loader = loader
        self._tickets: List[Ticket] = []
        self._version = 0
        self._loaded_at: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @property
    def tickets(self) -> List[Ticket]:
        return self._tickets

    @property
    def version(self) -> int:
        return self._version

    @property
    def loaded_at(self) -> Optional[datetime]:
        return self._loaded_at

    def awaiting(self) -> List[Ticket]:
        return [ticket for ticket in self._tickets if ticket.is_awaiting]

    async def refresh(self) -> bool:
        """Reload tickets from the source; True on success."""
        async with self._lock:
            try:
                with log_latency(logger, "ticket_reload", slow_ms=SLOW_RELOAD_MS):
                    tickets = await self._loader.load()
            except ApplicationException as e:
                logger.error("Ticket reload failed", extra={"error": e.message})
                return False
            except Exception as e:
                logger.error(
                    "Ticket reload failed",
                    extra={"error": str(e), "error_type": type(e).__name__}
                )
                return False

            self._tickets = list(tickets)
            self._version += 1
            self._loaded_at = datetime.now(timezone.utc)
            logger.debug(
                "Ticket snapshot replaced",
                extra={"count": len(self._tickets), "version": self._version}
            )
            return True


class DashboardBoard:
    """
    Display-only elapsed-time rows, recomputed on every display tick.

    Nothing here feeds escalation; the scan evaluates tickets on its own.
    """

    def __init__(self, config_provider: IDashboardConfigProvider):
        self._config_provider = config_provider
        self._rows: List[TicketTimeResponse] = []
        self._rendered_at: Optional[datetime] = None

    @property
    def rows(self) -> List[TicketTimeResponse]:
        return self._rows

    @property
    def rendered_at(self) -> Optional[datetime]:
        return self._rendered_at

    def render(self, tickets: Sequence[Ticket], now: datetime) -> List[TicketTimeResponse]:
        config = self._config_provider.get_config()
        rows = []
        for ticket in tickets:
            time_info = TimeStatusEvaluator.evaluate(
                ticket.created_at,
                now,
                config.warning_time_minutes,
                config.critical_time_minutes
            )
            rows.append(TicketTimeResponse(
                ticket_id=ticket.id,
                name=ticket.name,
                stage_number=ticket.stage_number,
                minutes=time_info.minutes,
                status=time_info.status,
                elapsed_label=format_time_since(ticket.created_at, now),
                waiting_label=waiting_time_label(ticket)
            ))
        self._rows = rows
        self._rendered_at = now
        return rows
