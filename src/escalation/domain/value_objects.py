"""
Escalation Value Objects
=========================

Immutable value objects for the escalation domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from config import (
    Severity,
    DEFAULT_NOTIFICATION_SOUND,
    DEFAULT_SOUND_VOLUME,
)


Timestamp = Union[datetime, str, None]

_DATETIME_ADAPTER = TypeAdapter(datetime)
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
# Postgres renders a whole-hour offset as "+00"
_HOUR_ONLY_OFFSET = re.compile(r"(:\d{2}(?:\.\d+)?)([+-]\d{2})$")


@dataclass(frozen=True)
class TimeStatus:
    """Elapsed whole minutes since creation and the severity band they fall in."""
    minutes: int
    status: str


UNKNOWN_TIME_STATUS = TimeStatus(minutes=0, status=Severity.NORMAL)


class TimeStatusEvaluator:
    """
    Pure functions for wait-time classification.

    Stateless utility class - ``now`` is always supplied by the caller so
    results are deterministic and testable without patching the clock.
    """

    @staticmethod
    def parse_timestamp(value: Any) -> Optional[datetime]:
        """
        Coerce a raw creation timestamp into an aware UTC datetime.

        Returns:
            The parsed datetime, or None when missing or unparsable.
        """
        if value is None:
            return None

        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            text = value.strip()
            if not _ISO_DATE_PREFIX.match(text):
                return None
            text = _HOUR_ONLY_OFFSET.sub(r"\1\2:00", text)
            try:
                parsed = _DATETIME_ADAPTER.validate_python(text)
            except ValidationError:
                return None
        else:
            return None

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def elapsed_minutes(created_at: Timestamp, now: datetime) -> Optional[int]:
        """
        Whole minutes (floored) between creation and now.

        Returns:
            Elapsed minutes, 0 for future timestamps, None when unknown.
        """
        created = TimeStatusEvaluator.parse_timestamp(created_at)
        if created is None:
            return None

        current = TimeStatusEvaluator.parse_timestamp(now)
        seconds = (current - created).total_seconds()
        if seconds <= 0:
            return 0
        return int(seconds // 60)

    @staticmethod
    def classify(
        minutes: int,
        warning_minutes: int,
        critical_minutes: int
    ) -> str:
        """
        Map elapsed minutes onto a severity band.

        Lower bounds are inclusive. Thresholds are not checked for order;
        with critical < warning the critical comparison simply wins.
        """
        if minutes >= critical_minutes:
            return Severity.CRITICAL
        if minutes >= warning_minutes:
            return Severity.WARNING
        return Severity.NORMAL

    @staticmethod
    def evaluate(
        created_at: Timestamp,
        now: datetime,
        warning_minutes: int,
        critical_minutes: int
    ) -> TimeStatus:
        """
        Compute the time status for a ticket.

        Args:
            created_at: Creation timestamp (datetime, ISO string, or None)
            now: Evaluation instant
            warning_minutes: Warning threshold in minutes
            critical_minutes: Critical threshold in minutes

        Returns:
            TimeStatus; missing or invalid timestamps yield 0 minutes / normal.
        """
        minutes = TimeStatusEvaluator.elapsed_minutes(created_at, now)
        if minutes is None:
            return UNKNOWN_TIME_STATUS

        return TimeStatus(
            minutes=minutes,
            status=TimeStatusEvaluator.classify(minutes, warning_minutes, critical_minutes)
        )


def evaluate_time_status(
    created_at: Timestamp,
    now: datetime,
    warning_minutes: int,
    critical_minutes: int
) -> TimeStatus:
    """Module-level shortcut for ``TimeStatusEvaluator.evaluate``."""
    return TimeStatusEvaluator.evaluate(created_at, now, warning_minutes, critical_minutes)


def format_minutes(minutes: int) -> str:
    """Render a minute count as ``N min`` or ``Hh Mmin``."""
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours}h {rest}min"


def format_time_since(created_at: Timestamp, now: datetime) -> str:
    """Display text for the elapsed-time badge of a ticket card."""
    minutes = TimeStatusEvaluator.elapsed_minutes(created_at, now)
    if minutes is None:
        return "--"
    if minutes < 1:
        return "<1 min"
    return format_minutes(minutes)


class DashboardConfig(BaseModel):
    """
    Operator-tunable dashboard options loaded from YAML.

    Keys follow the dashboard's camelCase names; snake_case is accepted too.
    Threshold order (warning < critical < full screen) is a convention of the
    configuration, not something this model enforces.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    warning_time_minutes: int = Field(
        default=10, alias="warningTimeMinutes", ge=0,
        description="Minutes before a waiting ticket turns warning"
    )
    critical_time_minutes: int = Field(
        default=20, alias="criticalTimeMinutes", ge=0,
        description="Minutes before a waiting ticket turns critical"
    )
    full_screen_alert_minutes: int = Field(
        default=30, alias="fullScreenAlertMinutes", ge=0,
        description="Minutes before a waiting ticket is escalated full screen"
    )
    notification_sound: str = Field(
        default=DEFAULT_NOTIFICATION_SOUND, alias="notificationSound",
        description="Sound played when a ticket is inserted"
    )
    alert_sound: Optional[str] = Field(
        default=None, alias="alertSound",
        description="Sound played when a full-screen alert is raised"
    )
    sound_volume: float = Field(
        default=DEFAULT_SOUND_VOLUME, alias="soundVolume",
        description="Playback volume between 0 and 1"
    )
    play_alert_sound: bool = Field(
        default=True, alias="playAlertSound",
        description="Play the alert sound when a new full-screen alert appears"
    )

    @field_validator("notification_sound", mode="before")
    @classmethod
    def default_blank_sound(cls, v: Any) -> Any:
        """Blank sound names fall back to the default notification sound."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_NOTIFICATION_SOUND
        return v

    @field_validator("sound_volume", mode="before")
    @classmethod
    def clamp_volume(cls, v: Any) -> float:
        """Clamp volume into [0, 1]; missing volume uses the default."""
        if v is None:
            return DEFAULT_SOUND_VOLUME
        return max(0.0, min(1.0, float(v)))

    @property
    def effective_alert_sound(self) -> str:
        """Alert sound, defaulting to the notification sound."""
        return self.alert_sound or self.notification_sound

    @property
    def thresholds_ordered(self) -> bool:
        """Whether warning <= critical <= full screen holds."""
        return (
            self.warning_time_minutes
            <= self.critical_time_minutes
            <= self.full_screen_alert_minutes
        )
