"""Shared fixtures for the dashboard tests."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from escalation.domain import DashboardConfig
from escalation.infrastructure import DashboardConfigManager
from notifications.infrastructure import AudioSubsystem

from support import SOUND_BASE, RecordingOutput, sound_transport


@pytest.fixture
def dashboard_config() -> DashboardConfig:
    return DashboardConfig(
        warningTimeMinutes=10,
        criticalTimeMinutes=20,
        fullScreenAlertMinutes=30,
    )


@pytest.fixture
def config_manager(dashboard_config: DashboardConfig) -> DashboardConfigManager:
    return DashboardConfigManager(config=dashboard_config)


@pytest.fixture
def output() -> RecordingOutput:
    return RecordingOutput()


@pytest.fixture
def make_subsystem(output: RecordingOutput) -> Callable[..., AudioSubsystem]:
    def factory(missing: set[str] | None = None, unlocked: bool = True) -> AudioSubsystem:
        client = httpx.AsyncClient(transport=sound_transport(missing))
        subsystem = AudioSubsystem(output, base_url=SOUND_BASE, client=client)
        if unlocked:
            subsystem.unlock()
        return subsystem

    return factory
