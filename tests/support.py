"""Helpers shared by the dashboard tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from core import AudioPlaybackException, SubscriptionException
from escalation.application import ITicketLoader
from escalation.domain import Ticket
from notifications.domain import MutationEvent
from notifications.infrastructure import AudioOutput, MutationStream, Subscription

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
SOUND_BASE = "http://sounds.test"


def minutes_ago(minutes: float) -> datetime:
    return NOW - timedelta(minutes=minutes)


def ticket(ticket_id: str, waited: float | None, stage: int = 1, **kwargs: Any) -> Ticket:
    created = minutes_ago(waited) if waited is not None else None
    return Ticket(id=ticket_id, created_at=created, stage_number=stage, **kwargs)


class RecordingOutput(AudioOutput):
    """Output stub recording what was played; can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.played: list[tuple[str, float, bytes]] = []
        self.closed = False

    async def play(self, data: bytes, volume: float, label: str) -> None:
        if self.fail:
            raise AudioPlaybackException("device busy", {"sound": label})
        self.played.append((label, volume, data))

    async def close(self) -> None:
        self.closed = True


def sound_transport(missing: set[str] | None = None) -> httpx.MockTransport:
    """Serve every /sounds/* path except the ones listed in ``missing``."""
    if missing is None:
        missing = set()

    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if name in missing:
            return httpx.Response(404)
        return httpx.Response(200, content=f"bytes:{name}".encode())

    return httpx.MockTransport(handler)


class DummyStream(MutationStream):
    """In-memory change stream; ``emit`` hands an event to every subscriber."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.handlers: list[Any] = []
        self.closed: list[Subscription] = []

    async def subscribe(self, collection: str, handler: Any) -> Subscription:
        if self.fail:
            raise SubscriptionException("channel refused", {"collection": collection})
        self.handlers.append(handler)
        subscription: Subscription | None = None

        async def closer() -> None:
            self.handlers.remove(handler)
            self.closed.append(subscription)

        subscription = Subscription(collection, closer)
        return subscription

    async def emit(self, event: MutationEvent) -> None:
        for handler in list(self.handlers):
            await handler(event)


class DummyLoader(ITicketLoader):
    def __init__(self, tickets: list[Ticket] | None = None) -> None:
        self.tickets = list(tickets or [])
        self.error: Exception | None = None
        self.calls = 0

    async def load(self) -> list[Ticket]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.tickets)
