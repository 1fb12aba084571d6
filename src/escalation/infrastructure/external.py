"""
Escalation External Service Integrations
=========================================

External services for the escalation module:
- YAML dashboard config with watchdog hot-reload
- APScheduler for the display and escalation tickers
- HTTP ticket loader
- In-memory toast feed for the presentation layer
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Deque, List, Optional

import yaml
import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from config import settings
from core import ConfigurationException, TicketSourceException
from escalation.application.dto import TicketRecordDTO
from escalation.application.services import (
    IDashboardConfigProvider,
    ITicketLoader,
    IToastSink,
)
from escalation.domain import DashboardConfig, Ticket
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for dashboard config file changes."""

    def __init__(self, config_manager: "DashboardConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info(f"Config file changed: {event.src_path}")
            self.config_manager.reload()


class DashboardConfigManager(IDashboardConfigProvider):
    """
    Thread-safe dashboard configuration manager with hot-reload support.

    Uses watchdog to monitor file changes and reload configuration
    without restarting the service. Consumers call ``get_config()`` on every
    use, so a reload takes effect on the next scan or sound.
    """

    def __init__(self, config: Optional[DashboardConfig] = None):
        self._config: Optional[DashboardConfig] = config
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> DashboardConfig:
        """Initial configuration load."""
        self._path = Path(path)
        config = self._load_from_file(self._path)
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> DashboardConfig:
        """Load and parse YAML config file."""
        if not path.exists():
            logger.warning(f"Dashboard config file not found: {path}, using defaults")
            return DashboardConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationException(f"Dashboard config must be a mapping: {path}")

        try:
            config = DashboardConfig(**data)
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid dashboard config: {path}",
                {"errors": e.errors()}
            ) from e

        if not config.thresholds_ordered:
            logger.warning(
                "Dashboard thresholds are out of order",
                extra={
                    "warning_minutes": config.warning_time_minutes,
                    "critical_minutes": config.critical_time_minutes,
                    "full_screen_minutes": config.full_screen_alert_minutes
                }
            )
        return config

    def reload(self) -> bool:
        """Reload configuration from file; the previous config survives failures."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (ConfigurationException, OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to reload dashboard config: {e}")
            return False

        with self._lock:
            self._config = new_config
        logger.info("Dashboard configuration reloaded successfully")
        return True

    def update(self, config: DashboardConfig) -> None:
        """Replace the configuration in memory (settings screen, tests)."""
        with self._lock:
            self._config = config

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or inotify is unavailable.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                f"Config file doesn't exist, skipping file watch: {self._path}. "
                "Using default dashboard configuration."
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching config file: {self._path}")
        except OSError as e:
            logger.warning(f"File watching not available, using static config: {e}")
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_config(self) -> DashboardConfig:
        with self._lock:
            if self._config is None:
                raise RuntimeError("Dashboard configuration not loaded")
            return self._config

    @property
    def config(self) -> DashboardConfig:
        """Get current configuration."""
        return self.get_config()


@dataclass
class Toast:
    """Advisory message for the operator."""
    message: str
    level: str
    created_at: datetime


class ToastFeed(IToastSink):
    """
    Bounded in-memory queue of advisory messages.

    The dashboard UI polls it; old messages fall off the end.
    """

    def __init__(self, max_items: int = 50):
        self._items: Deque[Toast] = deque(maxlen=max_items)
        self._lock = threading.Lock()

    def push(self, message: str, level: str = "info") -> None:
        toast = Toast(message=message, level=level, created_at=datetime.now(timezone.utc))
        with self._lock:
            self._items.append(toast)
        logger.info("Toast queued", extra={"toast": message, "level": level})

    def recent(self, limit: int = 20) -> List[Toast]:
        """Most recent messages, newest first."""
        with self._lock:
            items = list(self._items)
        return list(reversed(items))[:limit]


class HttpTicketLoader(ITicketLoader):
    """
    Loads the ticket collection from the system of record over HTTP.

    Rows that fail validation are skipped and logged; the rest keep their
    fetch order.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._url = url or settings.tickets_api_url
        self._http_client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds
            )
        return self._http_client

    async def load(self) -> List[Ticket]:
        client = await self._get_client()
        try:
            response = await client.get(self._url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TicketSourceException(str(e), {"url": self._url}) from e

        rows = payload.get("tickets", []) if isinstance(payload, dict) else payload
        if not isinstance(rows, list):
            raise TicketSourceException("unexpected ticket payload", {"url": self._url})

        return parse_ticket_rows(rows)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None


def parse_ticket_rows(rows: List[Any]) -> List[Ticket]:
    """Convert raw rows into ticket snapshots, dropping invalid rows."""
    tickets = []
    for row in rows:
        try:
            tickets.append(TicketRecordDTO.model_validate(row).to_entity())
        except ValidationError as e:
            logger.warning(
                "Skipping invalid ticket row",
                extra={"error_count": e.error_count()}
            )
    return tickets


class DashboardScheduler:
    """
    Wrapper for APScheduler driving the dashboard tickers.

    Each job runs with ``max_instances=1`` and ``coalesce=True``: a slow tick
    delays the next firing instead of queueing a second one.
    """

    def __init__(self):
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: List[tuple] = []
        self._running = False

    def add_job(
        self,
        job_id: str,
        func: Callable[[], Awaitable[None]],
        interval_seconds: int
    ) -> None:
        """Register an interval job; must be called before ``start``."""
        if self._running:
            raise RuntimeError("Cannot add jobs to a running scheduler")
        self._jobs.append((job_id, func, interval_seconds))

    async def start(self) -> None:
        """Start the scheduler with the registered jobs."""
        if self._running:
            logger.warning("Dashboard scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)

        for job_id, func, interval_seconds in self._jobs:
            self._scheduler.add_job(
                func,
                "interval",
                seconds=interval_seconds,
                id=job_id,
                name=job_id.replace("_", " ").title(),
                misfire_grace_time=interval_seconds,
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Dashboard scheduler started",
            extra={"jobs": [job_id for job_id, _, _ in self._jobs]}
        )

    async def stop(self) -> None:
        """Stop the scheduler (idempotent)."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("Dashboard scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    @property
    def job_ids(self) -> List[str]:
        return [job_id for job_id, _, _ in self._jobs]
