"""Tests for wait-time classification and display helpers."""

from __future__ import annotations

from datetime import timedelta

import pytest

from config import Severity
from escalation.domain import (
    Ticket,
    TimeStatus,
    TimeStatusEvaluator,
    evaluate_time_status,
    format_time_since,
    waiting_time_label,
)

from support import NOW, minutes_ago


@pytest.mark.parametrize(
    ("waited", "expected"),
    [
        (0, Severity.NORMAL),
        (9.99, Severity.NORMAL),
        (10, Severity.WARNING),
        (19.5, Severity.WARNING),
        (20, Severity.CRITICAL),
        (240, Severity.CRITICAL),
    ],
)
def test_severity_bands_have_inclusive_lower_bounds(waited: float, expected: str) -> None:
    status = evaluate_time_status(minutes_ago(waited), NOW, 10, 20)
    assert status.status == expected


def test_elapsed_minutes_are_floored() -> None:
    created = NOW - timedelta(minutes=12, seconds=59)
    assert evaluate_time_status(created, NOW, 10, 20).minutes == 12


@pytest.mark.parametrize("created", [None, "", "not-a-date", 12345, "2024-13-45T99:00:00"])
def test_missing_or_invalid_timestamp_degrades_to_normal(created: object) -> None:
    assert evaluate_time_status(created, NOW, 0, 0) == TimeStatus(minutes=0, status=Severity.NORMAL)


def test_iso_strings_with_z_suffix_are_parsed() -> None:
    status = evaluate_time_status("2024-05-01T11:35:00Z", NOW, 10, 20)
    assert status == TimeStatus(minutes=25, status=Severity.CRITICAL)


@pytest.mark.parametrize(
    "created",
    [
        "2024-05-01T11:35:00.12345+00:00",
        "2024-05-01T11:35:00.1+00:00",
        "2024-05-01T11:35:00.5+00",
        "2024-05-01 11:35:00.123+00",
        "2024-05-01T08:35:00.25-03",
    ],
)
def test_database_timestamp_variants_are_parsed(created: str) -> None:
    status = evaluate_time_status(created, NOW, 10, 20)
    assert status == TimeStatus(minutes=24, status=Severity.CRITICAL)


def test_naive_timestamps_are_treated_as_utc() -> None:
    naive = (NOW - timedelta(minutes=15)).replace(tzinfo=None)
    assert evaluate_time_status(naive, NOW, 10, 20).minutes == 15


def test_future_timestamp_counts_as_zero_elapsed() -> None:
    status = evaluate_time_status(NOW + timedelta(minutes=5), NOW, 10, 20)
    assert status == TimeStatus(minutes=0, status=Severity.NORMAL)


def test_out_of_order_thresholds_follow_comparison_order() -> None:
    # critical below warning: the critical comparison is checked first
    assert TimeStatusEvaluator.classify(15, warning_minutes=20, critical_minutes=10) == Severity.CRITICAL
    assert TimeStatusEvaluator.classify(5, warning_minutes=20, critical_minutes=10) == Severity.NORMAL


def test_format_time_since() -> None:
    assert format_time_since(None, NOW) == "--"
    assert format_time_since(NOW - timedelta(seconds=30), NOW) == "<1 min"
    assert format_time_since(minutes_ago(42), NOW) == "42 min"
    assert format_time_since(minutes_ago(135), NOW) == "2h 15min"


def test_waiting_label_only_for_tickets_that_left_the_queue() -> None:
    attended = Ticket(
        id="t1",
        created_at=minutes_ago(90),
        stage_number=2,
        stage1_exit_at=minutes_ago(15),
    )
    waiting = Ticket(id="t2", created_at=minutes_ago(90), stage_number=1, stage1_exit_at=minutes_ago(15))
    no_exit = Ticket(id="t3", created_at=minutes_ago(90), stage_number=3)

    assert waiting_time_label(attended) == "1h 15min waiting"
    assert waiting_time_label(waiting) is None
    assert waiting_time_label(no_exit) is None
