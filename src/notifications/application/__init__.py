"""
Notifications Application Layer
================================

Contains:
- NotificationDispatcher and its playback strategies
- RealtimeEventBridge
"""

from notifications.application.services import (
    NotificationDispatcher,
    RealtimeEventBridge,
    PlaybackRequest,
    PlaybackAttempt,
    PrimaryChannels,
    PrimaryChannelAttempt,
    NamedResourceAttempt,
    FreshInstanceAttempt,
    NEW_TICKET_MESSAGE,
)

__all__ = [
    "NotificationDispatcher",
    "RealtimeEventBridge",
    "PlaybackRequest",
    "PlaybackAttempt",
    "PrimaryChannels",
    "PrimaryChannelAttempt",
    "NamedResourceAttempt",
    "FreshInstanceAttempt",
    "NEW_TICKET_MESSAGE",
]
