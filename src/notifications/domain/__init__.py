"""
Notifications Domain Layer
==========================

Sound namespace rules, playback outcomes and mutation events.
No infrastructure dependencies.
"""

from notifications.domain.value_objects import (
    SOUND_OPTIONS,
    SOUND_DISPLAY_NAMES,
    SILENT_SOUND,
    RECOGNIZED_AUDIO_EXTENSIONS,
    SoundSettings,
    PlaybackResult,
    MutationEvent,
    is_silent,
    resolve_sound_path,
    resolve_sound_url,
    sound_display_name,
)

__all__ = [
    "SOUND_OPTIONS",
    "SOUND_DISPLAY_NAMES",
    "SILENT_SOUND",
    "RECOGNIZED_AUDIO_EXTENSIONS",
    "SoundSettings",
    "PlaybackResult",
    "MutationEvent",
    "is_silent",
    "resolve_sound_path",
    "resolve_sound_url",
    "sound_display_name",
]
