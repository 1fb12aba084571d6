"""
Notification Value Objects
===========================

Sound-resource namespace, playback outcomes and realtime mutation events.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import (
    EventKind,
    NotificationEvent,
    VALID_EVENT_KINDS,
    DEFAULT_NOTIFICATION_SOUND,
    DEFAULT_SOUND_VOLUME,
)


# Sound options served under /sounds
SOUND_OPTIONS: Dict[str, str] = {
    "alertabeebeep": "/sounds/alertabeebeep.mp3",
    "cashregister": "/sounds/cashregister.mp3",
    "notificacao": "/sounds/notificacao.mp3",
    "senna": "/sounds/senna.mp3",
    "sireneindustrial": "/sounds/sireneindustrial.mp3",
    "ultrapassagem": "/sounds/ultrapassagem.mp3",
}

SOUND_DISPLAY_NAMES: Dict[str, str] = {
    "alertabeebeep": "Alert Beep",
    "cashregister": "Cash Register",
    "notificacao": "Notification",
    "senna": "Senna",
    "sireneindustrial": "Industrial Siren",
    "ultrapassagem": "Overtake",
    "none": "No Sound",
}

SILENT_SOUND = "none"
RECOGNIZED_AUDIO_EXTENSIONS = (".mp3", ".wav", ".ogg")


def is_silent(sound: str) -> bool:
    return sound == SILENT_SOUND


def resolve_sound_path(sound: str) -> Optional[str]:
    """
    Map a logical sound name to its path under the sound namespace.

    Returns:
        ``/sounds/<file>``, or None for the silent sound.
    """
    if is_silent(sound):
        return None
    if sound in SOUND_OPTIONS:
        return SOUND_OPTIONS[sound]
    if sound.lower().endswith(RECOGNIZED_AUDIO_EXTENSIONS):
        return f"/sounds/{sound}"
    return f"/sounds/{sound}.mp3"


def resolve_sound_url(sound: str, base_url: str) -> Optional[str]:
    """Absolute URL of a sound, or None for the silent sound."""
    path = resolve_sound_path(sound)
    if path is None:
        return None
    return base_url.rstrip("/") + path


def sound_display_name(filename: Optional[str]) -> str:
    """Human-readable name for a sound file or option."""
    if not filename:
        return "Unknown Sound"

    stem = filename
    for extension in RECOGNIZED_AUDIO_EXTENSIONS:
        if stem.lower().endswith(extension):
            stem = stem[: -len(extension)]
            break

    if stem in SOUND_DISPLAY_NAMES:
        return SOUND_DISPLAY_NAMES[stem]

    spaced = "".join(f" {ch}" if ch.isupper() else ch for ch in stem).strip()
    return spaced[:1].upper() + spaced[1:]


@dataclass(frozen=True)
class SoundSettings:
    """Sound preferences as read from configuration at the moment of playback."""
    notification_sound: str = DEFAULT_NOTIFICATION_SOUND
    alert_sound: str = DEFAULT_NOTIFICATION_SOUND
    volume: float = DEFAULT_SOUND_VOLUME

    @classmethod
    def from_dashboard(cls, config: Any) -> "SoundSettings":
        """Extract sound preferences from a dashboard configuration."""
        return cls(
            notification_sound=config.notification_sound,
            alert_sound=config.effective_alert_sound,
            volume=config.sound_volume,
        )

    def sound_for(self, event: str) -> str:
        if event == NotificationEvent.ALERT:
            return self.alert_sound
        return self.notification_sound


@dataclass
class PlaybackResult:
    """Outcome of one notification attempt through the fallback chain."""
    sound: str
    succeeded: bool = False
    strategy: Optional[str] = None
    attempts: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def exhausted(self) -> bool:
        """Every tier was tried and none played."""
        return not self.succeeded


@dataclass(frozen=True)
class MutationEvent:
    """One change delivered by the realtime stream."""
    kind: str
    record: Dict[str, Any]
    collection: str = "tickets"

    @property
    def record_id(self) -> Optional[str]:
        value = self.record.get("id")
        return str(value) if value is not None else None

    @classmethod
    def from_payload(
        cls,
        payload: Dict[str, Any],
        event_name: Optional[str] = None,
        collection: str = "tickets"
    ) -> Optional["MutationEvent"]:
        """
        Build an event from a transport payload.

        The kind comes from the SSE event name when it names a change kind,
        otherwise from an ``eventType`` / ``type`` / ``kind`` field; the
        record from ``record``, ``new`` or ``old``. Unknown kinds yield None.
        """
        candidates = (event_name, payload.get("eventType"), payload.get("type"), payload.get("kind"))
        kinds = [c.strip().lower() for c in candidates if isinstance(c, str)]
        kind = next((k for k in kinds if k in VALID_EVENT_KINDS), None)
        if kind is None:
            return None

        record = payload.get("record")
        if record is None:
            record = payload.get("old") if kind == EventKind.DELETE else payload.get("new")
        if not isinstance(record, dict):
            record = {}
        return cls(kind=kind, record=record, collection=collection)
