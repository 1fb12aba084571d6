"""
Realtime Change Stream
======================

Subscription to the ticket change feed.

The transport is a Server-Sent Events endpoint streamed with httpx. Delivery
is at-most-once: a dropped connection is logged and not re-established here.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import AsyncIterator, Awaitable, Callable, Optional, Tuple

import httpx

from config import settings
from notifications.domain import MutationEvent
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[MutationEvent], Awaitable[None]]


class Subscription:
    """Handle for one active subscription; ``close`` is idempotent."""

    def __init__(self, collection: str, closer: Callable[[], Awaitable[None]]):
        self.collection = collection
        self._closer = closer
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._closer()
        logger.info("Realtime subscription closed", extra={"collection": self.collection})


class MutationStream(ABC):
    """Interface for a change-notification transport."""

    @abstractmethod
    async def subscribe(self, collection: str, handler: EventHandler) -> Subscription:
        """
        Start delivering events for a collection to ``handler``.

        Events must be handed over one at a time, in the order received.
        Raises SubscriptionException if the subscription cannot be created.
        """


async def iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[Tuple[Optional[str], str]]:
    """
    Parse a Server-Sent Events line stream.

    Yields:
        (event name or None, data) per dispatched event.
    """
    event_name: Optional[str] = None
    data_lines = []
    async for line in lines:
        if line == "":
            if data_lines:
                yield event_name, "\n".join(data_lines)
            event_name = None
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
    if data_lines:
        yield event_name, "\n".join(data_lines)


class SSEMutationStream(MutationStream):
    """Change stream read from ``<base_url>/<collection>/changes``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._base_url = (base_url or settings.realtime_url).rstrip("/")
        self._http_client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.http_timeout_seconds, read=None)
            )
        return self._http_client

    async def subscribe(self, collection: str, handler: EventHandler) -> Subscription:
        client = await self._get_client()
        url = f"{self._base_url}/{collection}/changes"
        task = asyncio.create_task(self._consume(client, url, collection, handler))

        async def closer() -> None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        logger.info("Realtime subscription started", extra={"collection": collection, "url": url})
        return Subscription(collection, closer)

    async def _consume(
        self,
        client: httpx.AsyncClient,
        url: str,
        collection: str,
        handler: EventHandler
    ) -> None:
        try:
            async with client.stream(
                "GET", url, headers={"Accept": "text/event-stream"}
            ) as response:
                response.raise_for_status()
                logger.info("Realtime channel subscribed", extra={"collection": collection})
                async for event_name, data in iter_sse(response.aiter_lines()):
                    await self._deliver(event_name, data, collection, handler)
            logger.warning("Realtime stream ended", extra={"collection": collection})
        except httpx.HTTPError as e:
            logger.error(
                "Realtime subscription failed",
                extra={"collection": collection, "url": url, "error": str(e)}
            )

    async def _deliver(
        self,
        event_name: Optional[str],
        data: str,
        collection: str,
        handler: EventHandler
    ) -> None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Discarding non-JSON realtime event", extra={"collection": collection})
            return
        if not isinstance(payload, dict):
            return

        event = MutationEvent.from_payload(payload, event_name, collection)
        if event is None:
            logger.debug("Ignoring realtime event", extra={"event": event_name})
            return

        try:
            await handler(event)
        except Exception as e:
            logger.error(
                "Realtime event handler failed",
                extra={"kind": event.kind, "error": str(e), "error_type": type(e).__name__}
            )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
