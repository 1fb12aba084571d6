"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety. Operator-tunable
    dashboard options (thresholds, sounds) live in the YAML file
    pointed to by ``dashboard_config_path`` and are hot-reloaded.
    """

    # ========== Application ==========
    app_name: str = Field(default="queue-watch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Dashboard Configuration ==========
    dashboard_config_path: Path = Field(
        default=Path("dashboard_config.yaml"),
        description="Path to dashboard configuration YAML file"
    )

    # ========== Ticket Source ==========
    tickets_api_url: str = Field(
        default="http://localhost:3000/api/tickets",
        description="Endpoint returning the current ticket collection"
    )
    realtime_url: str = Field(
        default="http://localhost:3000/realtime",
        description="Base URL of the change-notification stream"
    )
    http_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for ticket and sound HTTP calls",
        ge=0.1,
        le=30
    )

    # ========== Audio ==========
    sound_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL serving /sounds/<name>.mp3"
    )
    audio_player_command: List[str] = Field(
        default=["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", "-volume", "{volume}", "-"],
        description="External player command; sound bytes are piped to stdin, {volume} is 0-100"
    )
    audio_startup_grace_seconds: float = Field(
        default=0.25, ge=0,
        description="How long a player must survive before playback counts as started"
    )
    preload_sounds: bool = Field(default=True, description="Warm the sound cache at startup")
    unlock_audio_on_start: bool = Field(
        default=False,
        description="Treat startup as the unlocking gesture (unattended kiosks)"
    )

    # ========== Timers ==========
    display_tick_seconds: int = Field(
        default=1,
        description="Seconds between elapsed-time display refreshes",
        ge=1
    )
    escalation_scan_seconds: int = Field(
        default=15,
        description="Seconds between full-screen escalation scans",
        ge=1
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

# Stage number meaning "awaiting attendance"
AWAITING_STAGE = 1

DEFAULT_NOTIFICATION_SOUND = "notificacao"
DEFAULT_SOUND_VOLUME = 0.5


class Severity(str):
    """Wait-time severity bands."""
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class EventKind(str):
    """Mutation event kinds delivered by the realtime stream."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class NotificationEvent(str):
    """Logical events that can trigger a sound."""
    NEW_TICKET = "new_ticket"
    ALERT = "alert"


class PlaybackStrategy(str):
    """Fallback tiers of the notification dispatcher, in attempt order."""
    PRIMARY_CHANNEL = "primary_channel"
    NAMED_RESOURCE = "named_resource"
    FRESH_INSTANCE = "fresh_instance"


# ========== Lists for validation ==========

VALID_EVENT_KINDS = [EventKind.INSERT, EventKind.UPDATE, EventKind.DELETE]
PLAYBACK_ORDER = [
    PlaybackStrategy.PRIMARY_CHANNEL,
    PlaybackStrategy.NAMED_RESOURCE,
    PlaybackStrategy.FRESH_INSTANCE,
]
