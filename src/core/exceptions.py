"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the component boundaries. None of them is meant to reach the
process top level; timer jobs and sound playback log them at their edge.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class AudioPlaybackException(ExternalServiceException):
    """Exception for sound loading or playback failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Audio", message, details)


class AudioLockedException(AudioPlaybackException):
    """Playback rejected because no user gesture has unlocked audio yet."""

    def __init__(self, sound: str):
        self.sound = sound
        super().__init__(
            f"playback of '{sound}' blocked until audio is unlocked",
            {"sound": sound}
        )


class SubscriptionException(ExternalServiceException):
    """Exception for realtime subscription failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Realtime", message, details)


class TicketSourceException(ExternalServiceException):
    """Exception for ticket reload failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Ticket Source", message, details)
