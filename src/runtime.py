"""
Dashboard Runtime
=================

Wires the escalation and notification contexts together and owns every
long-lived piece: the ticket snapshot, the two tickers and the realtime
subscription.

STARTUP:
1. Load the ticket snapshot
2. Render the board and run a first escalation scan
3. Warm the sound cache and bind the primary channels
4. Mount the realtime bridge
5. Start the display and escalation tickers

SHUTDOWN (idempotent):
1. Stop the tickers
2. Unmount the realtime bridge
3. Release audio and HTTP resources
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Set

from config import NotificationEvent, Settings
from escalation.application import (
    AlertEscalationMonitor,
    DashboardBoard,
    ITicketLoader,
    TicketSnapshotStore,
)
from escalation.domain import BatchDismissal, DismissalTracker, ScanResult
from escalation.infrastructure import (
    DashboardConfigManager,
    DashboardScheduler,
    HttpTicketLoader,
    ToastFeed,
)
from notifications.application import NotificationDispatcher, RealtimeEventBridge
from notifications.domain import SoundSettings
from notifications.infrastructure import (
    AudioSubsystem,
    MutationStream,
    SSEMutationStream,
    SubprocessAudioOutput,
)
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

DISPLAY_TICK_JOB = "display_tick"
ESCALATION_SCAN_JOB = "escalation_scan"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DashboardRuntime:
    """Owns the live dashboard state and its timers."""

    def __init__(
        self,
        config_manager: DashboardConfigManager,
        loader: ITicketLoader,
        stream: MutationStream,
        subsystem: AudioSubsystem,
        toasts: Optional[ToastFeed] = None,
        scheduler: Optional[DashboardScheduler] = None,
        display_interval: int = 1,
        scan_interval: int = 15,
        clock: Clock = utc_now,
        preload_sounds: bool = True,
        unlock_on_start: bool = False,
        closers: Optional[List[Callable[[], Awaitable[None]]]] = None
    ):
        self.config_manager = config_manager
        self.toasts = toasts if toasts is not None else ToastFeed()
        self.store = TicketSnapshotStore(loader)
        self.board = DashboardBoard(config_manager)
        self.monitor = AlertEscalationMonitor(config_manager, DismissalTracker(), self.toasts)
        self.dispatcher = NotificationDispatcher(
            subsystem,
            lambda: SoundSettings.from_dashboard(config_manager.get_config())
        )
        self.bridge = RealtimeEventBridge(
            stream,
            self.refresh,
            self.dispatcher,
            on_toast=lambda message: self.toasts.push(message, level="info")
        )
        self.scheduler = scheduler if scheduler is not None else DashboardScheduler()
        self.scheduler.add_job(DISPLAY_TICK_JOB, self.display_tick, display_interval)
        self.scheduler.add_job(ESCALATION_SCAN_JOB, self.escalation_scan, scan_interval)

        self._clock = clock
        self._preload_sounds = preload_sounds
        self._unlock_on_start = unlock_on_start
        self._closers = list(closers or [])
        self._alert_tasks: Set[asyncio.Task] = set()
        self._started = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        config_manager: DashboardConfigManager
    ) -> "DashboardRuntime":
        """Build a runtime with the HTTP/SSE/subprocess collaborators."""
        loader = HttpTicketLoader(settings.tickets_api_url)
        stream = SSEMutationStream(settings.realtime_url)
        subsystem = AudioSubsystem(
            SubprocessAudioOutput(settings.audio_player_command),
            base_url=settings.sound_base_url
        )
        return cls(
            config_manager,
            loader,
            stream,
            subsystem,
            display_interval=settings.display_tick_seconds,
            scan_interval=settings.escalation_scan_seconds,
            preload_sounds=settings.preload_sounds,
            unlock_on_start=settings.unlock_audio_on_start,
            closers=[loader.close, stream.close]
        )

    @property
    def is_running(self) -> bool:
        return self._started

    # ========== Lifecycle ==========

    async def start(self) -> None:
        if self._started:
            logger.warning("Dashboard runtime already started")
            return
        self._started = True

        if self._unlock_on_start:
            self.dispatcher.unlock()

        await self.refresh()

        if self._preload_sounds:
            await self.dispatcher.subsystem.preload_all()
        await self.dispatcher.prepare((NotificationEvent.NEW_TICKET, NotificationEvent.ALERT))

        await self.bridge.mount()
        await self.scheduler.start()
        logger.info("Dashboard runtime started", extra={"tickets": len(self.store.tickets)})

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False

        await self.scheduler.stop()
        await self.bridge.unmount()

        pending = list(self._alert_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._alert_tasks.clear()

        self.dispatcher.close()
        await self.dispatcher.subsystem.close()
        for closer in self._closers:
            await closer()
        logger.info("Dashboard runtime stopped")

    # ========== Ticks ==========

    async def refresh(self) -> bool:
        """Reload the snapshot, then re-derive board and alert from it."""
        loaded = await self.store.refresh()
        if loaded:
            await self.display_tick()
            await self.escalation_scan()
        return loaded

    async def display_tick(self) -> None:
        self.board.render(self.store.tickets, self._clock())

    async def escalation_scan(self) -> ScanResult:
        result = self.monitor.scan(self.store.tickets, self._clock())
        if result.newly_raised and self.config_manager.get_config().play_alert_sound:
            task = asyncio.create_task(self.dispatcher.play_event(NotificationEvent.ALERT))
            self._alert_tasks.add(task)
            task.add_done_callback(self._alert_tasks.discard)
        return result

    # ========== Operator actions ==========

    def unlock_audio(self) -> bool:
        return self.dispatcher.unlock()

    def close_alert(self, ticket_id: str) -> bool:
        return self.monitor.close_alert(ticket_id)

    def dismiss_all(self) -> BatchDismissal:
        return self.monitor.dismiss_all_waiting(self.store.tickets)
