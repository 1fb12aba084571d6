"""
Notification Application Services
==================================

Best-effort audible notifications and the realtime bridge that triggers them.

NotificationDispatcher walks an ordered list of playback strategies until one
starts the sound or the list is exhausted; nothing is raised to the caller and
nothing is retried later. RealtimeEventBridge turns change events into data
refreshes and new-ticket notifications.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from config import PLAYBACK_ORDER, EventKind, NotificationEvent, PlaybackStrategy
from core import ApplicationException, AudioPlaybackException
from notifications.domain import MutationEvent, PlaybackResult, SoundSettings
from notifications.infrastructure.audio import AudioSubsystem, SoundResource
from notifications.infrastructure.realtime import MutationStream, Subscription
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

NEW_TICKET_MESSAGE = "New ticket in the queue!"


@dataclass(frozen=True)
class PlaybackRequest:
    """What to play, resolved from configuration at call time."""
    sound: str
    volume: float
    role: str
    override: bool = False


class PrimaryChannels:
    """
    Long-lived, preloaded handles, one per logical sound role.

    A handle stays bound to the sound configured for its role; a change of
    configuration rebinds the role to a new handle.
    """

    def __init__(self, subsystem: AudioSubsystem):
        self._subsystem = subsystem
        self._handles: Dict[str, SoundResource] = {}

    def get(self, role: str) -> Optional[SoundResource]:
        return self._handles.get(role)

    async def bind(self, role: str, sound: str) -> SoundResource:
        previous = self._handles.pop(role, None)
        if previous is not None:
            previous.release()

        handle = self._subsystem.create_resource(sound)
        await handle.load()
        self._handles[role] = handle
        logger.info("Primary channel bound", extra={"role": role, "sound": sound, "ready": handle.ready})
        return handle

    def release_all(self) -> None:
        for handle in self._handles.values():
            handle.release()
        self._handles.clear()


class PlaybackAttempt(ABC):
    """One tier of the fallback chain. ``attempt`` raises if it cannot play."""

    name: str = ""

    @abstractmethod
    async def attempt(self, request: PlaybackRequest) -> None:
        """Try to start playback of the request."""


class PrimaryChannelAttempt(PlaybackAttempt):
    """Rewind and replay the role's preloaded handle. Overrides never use it."""

    name = PlaybackStrategy.PRIMARY_CHANNEL

    def __init__(self, channels: PrimaryChannels):
        self._channels = channels

    async def attempt(self, request: PlaybackRequest) -> None:
        if request.override:
            raise AudioPlaybackException("primary channel reserved for configured sound", {"role": request.role})
        handle = self._channels.get(request.role)
        if handle is None:
            raise AudioPlaybackException("primary channel missing", {"role": request.role})
        if handle.sound != request.sound:
            handle = await self._channels.bind(request.role, request.sound)
        if not handle.ready:
            raise AudioPlaybackException("primary channel not ready", {"sound": request.sound})

        handle.pause()
        handle.rewind()
        handle.volume = request.volume
        await handle.play()


class NamedResourceAttempt(PlaybackAttempt):
    """Play the sound's resource from the subsystem's preload cache."""

    name = PlaybackStrategy.NAMED_RESOURCE

    def __init__(self, subsystem: AudioSubsystem):
        self._subsystem = subsystem

    async def attempt(self, request: PlaybackRequest) -> None:
        resource = self._subsystem.get_cached(request.sound)
        if resource is None or not resource.ready:
            raise AudioPlaybackException("sound not preloaded", {"sound": request.sound})

        resource.rewind()
        resource.volume = request.volume
        await resource.play()


class FreshInstanceAttempt(PlaybackAttempt):
    """Build a brand-new resource, force a load, then play. Last resort."""

    name = PlaybackStrategy.FRESH_INSTANCE

    def __init__(self, subsystem: AudioSubsystem):
        self._subsystem = subsystem

    async def attempt(self, request: PlaybackRequest) -> None:
        resource = self._subsystem.create_resource(request.sound)
        resource.volume = request.volume
        await resource.load()
        await resource.play()


SettingsProvider = Callable[[], SoundSettings]


class NotificationDispatcher:
    """
    Plays notification sounds through a three-tier fallback chain.

    Sound name and volume are read from ``settings_provider`` on every call,
    so configuration changes apply to the next notification. Each tier runs
    at most once per call.
    """

    def __init__(
        self,
        subsystem: AudioSubsystem,
        settings_provider: SettingsProvider,
        strategies: Optional[Sequence[PlaybackAttempt]] = None
    ):
        self._subsystem = subsystem
        self._settings_provider = settings_provider
        self._channels = PrimaryChannels(subsystem)
        if strategies is None:
            tiers = {
                PlaybackStrategy.PRIMARY_CHANNEL: PrimaryChannelAttempt(self._channels),
                PlaybackStrategy.NAMED_RESOURCE: NamedResourceAttempt(subsystem),
                PlaybackStrategy.FRESH_INSTANCE: FreshInstanceAttempt(subsystem),
            }
            strategies = [tiers[name] for name in PLAYBACK_ORDER]
        self._strategies: List[PlaybackAttempt] = list(strategies)

    @property
    def subsystem(self) -> AudioSubsystem:
        return self._subsystem

    @property
    def channels(self) -> PrimaryChannels:
        return self._channels

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self._strategies]

    def unlock(self) -> bool:
        """Forward a user gesture to the audio subsystem."""
        return self._subsystem.unlock()

    def _current_settings(self) -> SoundSettings:
        try:
            return self._settings_provider()
        except (ApplicationException, RuntimeError) as e:
            logger.warning("Sound settings unavailable, using defaults", extra={"error": str(e)})
            return SoundSettings()

    async def prepare(self, roles: Sequence[str] = (NotificationEvent.NEW_TICKET,)) -> None:
        """Bind and preload the primary channel of each role."""
        prefs = self._current_settings()
        for role in roles:
            await self._channels.bind(role, prefs.sound_for(role))

    async def play(
        self,
        sound: Optional[str] = None,
        volume: Optional[float] = None,
        role: str = NotificationEvent.NEW_TICKET
    ) -> PlaybackResult:
        """
        Attempt to play a sound; never raises.

        Args:
            sound: Sound name; defaults to the configured sound for ``role``
            volume: Volume 0-1; defaults to the configured volume
            role: Logical sound role owning the primary channel

        Returns:
            PlaybackResult describing which tiers ran and which one played.
        """
        prefs = self._current_settings()
        configured = prefs.sound_for(role)
        request = PlaybackRequest(
            sound=sound or configured,
            volume=prefs.volume if volume is None else volume,
            role=role,
            override=bool(sound) and sound != configured
        )
        result = PlaybackResult(sound=request.sound)

        for strategy in self._strategies:
            result.attempts.append(strategy.name)
            try:
                await strategy.attempt(request)
            except AudioPlaybackException as e:
                result.errors[strategy.name] = e.message
                logger.warning(
                    "Playback attempt failed",
                    extra={"strategy": strategy.name, "sound": request.sound, "error": e.message}
                )
                continue
            except Exception as e:
                result.errors[strategy.name] = str(e)
                logger.error(
                    "Playback attempt crashed",
                    extra={
                        "strategy": strategy.name,
                        "sound": request.sound,
                        "error": str(e),
                        "error_type": type(e).__name__
                    }
                )
                continue

            result.succeeded = True
            result.strategy = strategy.name
            logger.info(
                "Notification sound played",
                extra={"strategy": strategy.name, "sound": request.sound, "volume": request.volume}
            )
            return result

        logger.error(
            "Notification sound lost, fallback chain exhausted",
            extra={"sound": request.sound, "attempts": result.attempts}
        )
        return result

    async def play_event(self, event: str) -> PlaybackResult:
        """Play the configured sound for a logical event."""
        return await self.play(role=event)

    def close(self) -> None:
        self._channels.release_all()


RefreshCallback = Callable[[], Any]
ToastCallback = Callable[[str], None]


class RealtimeEventBridge:
    """
    Connects the ticket change stream to data refreshes and notifications.

    Every event triggers the refresh callback; inserts additionally play the
    new-ticket sound and raise a toast. Work the bridge starts (refreshes that
    return awaitables, sounds) runs as background tasks so event handling
    never waits on it. One subscription at most exists per bridge.
    """

    def __init__(
        self,
        stream: MutationStream,
        refresh: RefreshCallback,
        dispatcher: NotificationDispatcher,
        on_toast: Optional[ToastCallback] = None,
        collection: str = "tickets"
    ):
        self._stream = stream
        self._refresh = refresh
        self._dispatcher = dispatcher
        self._on_toast = on_toast
        self._collection = collection
        self._subscription: Optional[Subscription] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_mounted(self) -> bool:
        return self._subscription is not None

    async def mount(self) -> bool:
        """
        Subscribe to the change stream, replacing any existing subscription.

        Returns:
            True if the subscription was created; failures are logged.
        """
        if self._subscription is not None:
            await self.unmount()

        try:
            self._subscription = await self._stream.subscribe(self._collection, self.handle_event)
        except ApplicationException as e:
            logger.error("Realtime subscription failed", extra={"error": e.message})
            return False
        except Exception as e:
            logger.error(
                "Realtime subscription failed",
                extra={"error": str(e), "error_type": type(e).__name__}
            )
            return False

        logger.info("Realtime bridge mounted", extra={"collection": self._collection})
        return True

    async def unmount(self) -> None:
        """Tear down the subscription and pending work (idempotent)."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()

        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

        if subscription is not None:
            logger.info("Realtime bridge unmounted", extra={"collection": self._collection})

    async def __aenter__(self) -> "RealtimeEventBridge":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.unmount()

    def _spawn(self, awaitable: Awaitable[Any], label: str) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._finish(done, label))

    def _finish(self, task: asyncio.Task, label: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Background task failed",
                extra={"task": label, "error": str(error), "error_type": type(error).__name__}
            )

    async def wait_idle(self) -> None:
        """Wait until background work started by events has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def handle_event(self, event: MutationEvent) -> None:
        """Process one change event."""
        logger.info(
            "Ticket change received",
            extra={"kind": event.kind, "ticket_id": event.record_id}
        )

        if event.kind == EventKind.INSERT:
            self._spawn(self._dispatcher.play_event(NotificationEvent.NEW_TICKET), "new_ticket_sound")
            if self._on_toast is not None:
                self._on_toast(NEW_TICKET_MESSAGE)

        result = self._refresh()
        if inspect.isawaitable(result):
            self._spawn(result, "refresh")
