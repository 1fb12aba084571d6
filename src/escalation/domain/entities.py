"""
Escalation Domain Entities
===========================

Pure Python domain entities for wait-time escalation.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Set

from config import AWAITING_STAGE
from escalation.domain.value_objects import (
    Timestamp,
    TimeStatusEvaluator,
    format_minutes,
)


@dataclass(frozen=True)
class Ticket:
    """
    Read-only snapshot of a queued ticket.

    Owned by the external data layer; the core never mutates it and
    replaces the whole collection on every reload.
    """

    id: str
    created_at: Timestamp
    stage_number: int
    stage1_exit_at: Timestamp = None
    name: Optional[str] = None

    @property
    def is_awaiting(self) -> bool:
        """Check if ticket is still waiting to be attended."""
        return self.stage_number == AWAITING_STAGE

    @property
    def waiting_minutes(self) -> Optional[int]:
        """Minutes the ticket waited before leaving the awaiting stage."""
        if self.is_awaiting or self.stage1_exit_at is None:
            return None
        exit_at = TimeStatusEvaluator.parse_timestamp(self.stage1_exit_at)
        if exit_at is None:
            return None
        return TimeStatusEvaluator.elapsed_minutes(self.created_at, exit_at)


def waiting_time_label(ticket: Ticket) -> Optional[str]:
    """Display text for how long an attended ticket had waited."""
    minutes = ticket.waiting_minutes
    if minutes is None:
        return None
    return f"{format_minutes(minutes)} waiting"


@dataclass(frozen=True)
class BatchDismissal:
    """
    Outcome of a bulk dismissal.

    ``requested`` is the nominal batch size and is what the operator is told;
    ``newly_added`` is the true number of ids that were not dismissed before.
    """
    requested: int
    newly_added: int

    @property
    def already_dismissed(self) -> int:
        return self.requested - self.newly_added


class DismissalTracker:
    """
    Ticket ids the operator has suppressed from full-screen escalation.

    Membership only grows and lives for the process lifetime. Stale ids
    (tickets that left the queue) are kept and are harmless.
    """

    def __init__(self, initial: Iterable[str] = ()):
        self._ids: Set[str] = set(initial)
        self._lock = threading.Lock()

    def dismiss(self, ticket_id: str) -> bool:
        """
        Suppress one ticket.

        Returns:
            True if the id was not dismissed before.
        """
        with self._lock:
            if ticket_id in self._ids:
                return False
            self._ids.add(ticket_id)
            return True

    def dismiss_all(self, ticket_ids: Iterable[str]) -> BatchDismissal:
        """Suppress a batch of tickets."""
        ids = list(ticket_ids)
        with self._lock:
            before = len(self._ids)
            self._ids.update(ids)
            added = len(self._ids) - before
        return BatchDismissal(requested=len(ids), newly_added=added)

    def is_dismissed(self, ticket_id: str) -> bool:
        with self._lock:
            return ticket_id in self._ids

    def snapshot(self) -> frozenset:
        with self._lock:
            return frozenset(self._ids)

    def __contains__(self, ticket_id: object) -> bool:
        return self.is_dismissed(ticket_id)  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one escalation scan."""
    active: Optional[Ticket]
    newly_raised: bool
    scanned_at: datetime
    candidates: int = 0

    @property
    def active_id(self) -> Optional[str]:
        return self.active.id if self.active else None
