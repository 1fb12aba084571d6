"""Tests for the three-tier notification fallback chain."""

from __future__ import annotations

from typing import Callable

import pytest

from config import PLAYBACK_ORDER, NotificationEvent, PlaybackStrategy
from core import AudioPlaybackException
from escalation.domain import DashboardConfig
from escalation.infrastructure import DashboardConfigManager
from notifications.application import NotificationDispatcher, PlaybackAttempt, PlaybackRequest
from notifications.domain import SoundSettings
from notifications.infrastructure import AudioSubsystem

from support import RecordingOutput

ALL_TIERS = list(PLAYBACK_ORDER)


def _dispatcher(subsystem: AudioSubsystem, config_manager: DashboardConfigManager, **kwargs) -> NotificationDispatcher:
    return NotificationDispatcher(
        subsystem,
        lambda: SoundSettings.from_dashboard(config_manager.get_config()),
        **kwargs
    )


class DummyAttempt(PlaybackAttempt):
    def __init__(self, name: str, error: Exception | None = None):
        self.name = name
        self.error = error
        self.calls: list[PlaybackRequest] = []

    async def attempt(self, request: PlaybackRequest) -> None:
        self.calls.append(request)
        if self.error is not None:
            raise self.error


@pytest.mark.asyncio
async def test_primary_channel_plays_when_ready(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    dispatcher = _dispatcher(make_subsystem(), config_manager)
    await dispatcher.prepare()

    result = await dispatcher.play()

    assert result.succeeded
    assert result.strategy == PlaybackStrategy.PRIMARY_CHANNEL
    assert result.attempts == [PlaybackStrategy.PRIMARY_CHANNEL]
    assert output.played == [("notificacao", 0.5, b"bytes:notificacao.mp3")]


@pytest.mark.asyncio
async def test_named_resource_used_when_primary_missing(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    subsystem = make_subsystem()
    await subsystem.preload_all()
    dispatcher = _dispatcher(subsystem, config_manager)

    result = await dispatcher.play()

    assert result.strategy == PlaybackStrategy.NAMED_RESOURCE
    assert PlaybackStrategy.PRIMARY_CHANNEL in result.errors
    assert len(output.played) == 1


@pytest.mark.asyncio
async def test_fresh_instance_attempted_exactly_once_after_other_tiers_fail(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    # no primary channel and a cold cache
    dispatcher = _dispatcher(make_subsystem(), config_manager)

    result = await dispatcher.play()

    assert result.succeeded
    assert result.strategy == PlaybackStrategy.FRESH_INSTANCE
    assert result.attempts == ALL_TIERS
    assert output.played == [("notificacao", 0.5, b"bytes:notificacao.mp3")]


@pytest.mark.asyncio
async def test_locked_audio_exhausts_chain_without_raising(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    subsystem = make_subsystem(unlocked=False)
    await subsystem.preload_all()
    dispatcher = _dispatcher(subsystem, config_manager)
    await dispatcher.prepare()

    result = await dispatcher.play()

    assert result.exhausted
    assert result.attempts == ALL_TIERS
    assert set(result.errors) == set(ALL_TIERS)
    assert output.played == []


@pytest.mark.asyncio
async def test_missing_sound_file_is_lost(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    subsystem = make_subsystem(missing={"notificacao.mp3"})
    await subsystem.preload_all()
    dispatcher = _dispatcher(subsystem, config_manager)
    await dispatcher.prepare()

    result = await dispatcher.play()

    assert result.exhausted
    assert result.attempts == ALL_TIERS
    assert output.played == []


@pytest.mark.asyncio
async def test_output_failure_falls_through_every_tier(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    subsystem = make_subsystem()
    await subsystem.preload_all()
    dispatcher = _dispatcher(subsystem, config_manager)
    await dispatcher.prepare()
    output.fail = True

    result = await dispatcher.play()

    assert result.exhausted
    assert result.attempts == ALL_TIERS


@pytest.mark.asyncio
async def test_configuration_is_read_at_call_time(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    dispatcher = _dispatcher(make_subsystem(), config_manager)
    await dispatcher.prepare()

    config_manager.update(DashboardConfig(notificationSound="senna", soundVolume=0.8))
    result = await dispatcher.play()

    # the primary channel is rebound to the new sound
    assert result.strategy == PlaybackStrategy.PRIMARY_CHANNEL
    assert output.played == [("senna", 0.8, b"bytes:senna.mp3")]
    assert dispatcher.channels.get(NotificationEvent.NEW_TICKET).sound == "senna"


@pytest.mark.asyncio
async def test_alert_role_uses_alert_sound(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    config_manager.update(DashboardConfig(alertSound="sireneindustrial"))
    dispatcher = _dispatcher(make_subsystem(), config_manager)
    await dispatcher.prepare([NotificationEvent.NEW_TICKET, NotificationEvent.ALERT])

    result = await dispatcher.play_event(NotificationEvent.ALERT)

    assert result.sound == "sireneindustrial"
    assert result.strategy == PlaybackStrategy.PRIMARY_CHANNEL
    assert output.played[0][0] == "sireneindustrial"


@pytest.mark.asyncio
async def test_explicit_zero_volume_is_kept(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    dispatcher = _dispatcher(make_subsystem(), config_manager)

    await dispatcher.play(sound="cashregister", volume=0)

    assert output.played == [("cashregister", 0, b"bytes:cashregister.mp3")]


@pytest.mark.asyncio
async def test_silent_sound_succeeds_without_output(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    dispatcher = _dispatcher(make_subsystem(), config_manager)
    await dispatcher.prepare()

    result = await dispatcher.play(sound="none")

    assert result.succeeded
    assert output.played == []


@pytest.mark.asyncio
async def test_unexpected_errors_do_not_escape(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
) -> None:
    broken = DummyAttempt("broken", RuntimeError("boom"))
    refused = DummyAttempt("refused", AudioPlaybackException("nope"))
    working = DummyAttempt("working")
    dispatcher = _dispatcher(make_subsystem(), config_manager, strategies=[broken, refused, working])

    result = await dispatcher.play()

    assert result.strategy == "working"
    assert result.errors == {"broken": "boom", "refused": "Audio: nope"}
    assert len(broken.calls) == len(refused.calls) == len(working.calls) == 1


@pytest.mark.asyncio
async def test_unloaded_configuration_falls_back_to_defaults(
    make_subsystem: Callable[..., AudioSubsystem],
    output: RecordingOutput,
) -> None:
    dispatcher = _dispatcher(make_subsystem(), DashboardConfigManager())

    result = await dispatcher.play()

    assert result.sound == "notificacao"
    assert output.played[0][1] == 0.5


def test_default_chain_follows_playback_order(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
) -> None:
    dispatcher = _dispatcher(make_subsystem(), config_manager)

    assert dispatcher.strategy_names == [
        PlaybackStrategy.PRIMARY_CHANNEL,
        PlaybackStrategy.NAMED_RESOURCE,
        PlaybackStrategy.FRESH_INSTANCE,
    ]


@pytest.mark.asyncio
async def test_sound_override_keeps_new_ticket_channel_bound(
    make_subsystem: Callable[..., AudioSubsystem],
    config_manager: DashboardConfigManager,
    output: RecordingOutput,
) -> None:
    missing: set[str] = set()
    subsystem = make_subsystem(missing=missing)
    dispatcher = _dispatcher(subsystem, config_manager)
    await dispatcher.prepare()

    preview = await dispatcher.play(sound="senna")

    assert preview.succeeded
    assert preview.strategy == PlaybackStrategy.FRESH_INSTANCE
    assert dispatcher.channels.get(NotificationEvent.NEW_TICKET).sound == "notificacao"

    # the sound server goes away; the preloaded handle still plays
    missing.update({"notificacao.mp3", "senna.mp3"})
    result = await dispatcher.play_event(NotificationEvent.NEW_TICKET)

    assert result.strategy == PlaybackStrategy.PRIMARY_CHANNEL
    assert [label for label, _, _ in output.played] == ["senna", "notificacao"]
