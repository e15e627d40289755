"""Tests for sysmotd.formatting."""

from __future__ import annotations

import pytest

from sysmotd.formatting import (
    Severity,
    classify,
    container_status,
    fmt_bytes,
    format_uptime,
    humanize_elapsed,
    is_stale,
)
from sysmotd.info import ContainerEntry, ContainerState

# ── fmt_bytes ──────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, "0.00 GB"),
        (1_500_000_000, "1.40 GB"),
        (3_000_000_000, "3 GB"),
        (2 * 1024**3, "2 GB"),
        (2 * 1024**3 - 1, "2.00 GB"),
        (int(2.5 * 1024**3), "3 GB"),
        (500 * 1024**3, "500 GB"),
    ],
)
def test_fmt_bytes(value: int, expected: str) -> None:
    assert fmt_bytes(value) == expected


def test_fmt_bytes_other_unit() -> None:
    assert fmt_bytes(1536 * 1024, unit="MB") == "1.50 MB"
    assert fmt_bytes(3 * 1024**4, unit="TB") == "3 TB"


# ── Durations ──────────────────────────────────────────────────────────────


class TestHumanizeElapsed:
    def test_under_a_minute(self) -> None:
        assert humanize_elapsed(30) == "less than a minute"

    def test_zero(self) -> None:
        assert humanize_elapsed(0) == "less than a minute"

    def test_coarsest_unit_only(self) -> None:
        assert humanize_elapsed(3661) == "1 hour"

    def test_plural(self) -> None:
        assert humanize_elapsed(3 * 3600 + 59) == "3 hours"
        assert humanize_elapsed(2 * 86400 + 5 * 3600) == "2 days"

    def test_minutes(self) -> None:
        assert humanize_elapsed(90) == "1 minute"
        assert humanize_elapsed(45 * 60) == "45 minutes"


class TestFormatUptime:
    def test_all_units(self) -> None:
        assert format_uptime(86400 + 2 * 3600 + 3 * 60 + 4) == "1 day, 2 hours, 3 minutes, 4 seconds"

    def test_skips_zero_units(self) -> None:
        assert format_uptime(2 * 86400 + 60) == "2 days, 1 minute"

    def test_zero(self) -> None:
        assert format_uptime(0) == "0 seconds"

    def test_fractional_seconds_truncated(self) -> None:
        assert format_uptime(61.9) == "1 minute, 1 second"


# ── classify ───────────────────────────────────────────────────────────────


def test_classify_ok() -> None:
    assert classify(0.5, 0.80, 0.90) is Severity.OK


def test_classify_warning_inclusive() -> None:
    assert classify(0.80, 0.80, 0.90) is Severity.WARNING


def test_classify_critical_inclusive() -> None:
    assert classify(0.90, 0.80, 0.90) is Severity.CRITICAL


def test_classify_above_critical() -> None:
    assert classify(1.2, 0.80, 0.90) is Severity.CRITICAL


# ── container_status ───────────────────────────────────────────────────────


class TestContainerStatus:
    def test_running(self) -> None:
        entry = ContainerEntry("web", ContainerState.RUNNING, elapsed_seconds=3661)
        assert container_status(entry) == "Up 1 hour"

    def test_exited(self) -> None:
        entry = ContainerEntry("job", ContainerState.EXITED, elapsed_seconds=30, exit_code=1)
        assert container_status(entry) == "Exited (1) less than a minute ago"

    def test_exited_without_code(self) -> None:
        entry = ContainerEntry("job", ContainerState.EXITED, elapsed_seconds=7200)
        assert container_status(entry) == "Exited (0) 2 hours ago"

    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            (ContainerState.CREATED, "Created"),
            (ContainerState.PAUSED, "Paused"),
            (ContainerState.RESTARTING, "Restarting"),
            (ContainerState.REMOVING, "Removing"),
            (ContainerState.DEAD, "Dead"),
            (ContainerState.EMPTY, "Empty"),
        ],
    )
    def test_other_states(self, state: ContainerState, expected: str) -> None:
        assert container_status(ContainerEntry("c", state, elapsed_seconds=100)) == expected


class TestIsStale:
    def test_old_exited_is_stale(self) -> None:
        entry = ContainerEntry("job", ContainerState.EXITED, elapsed_seconds=9 * 3600, exit_code=0)
        assert is_stale(entry, 8 * 3600)

    def test_recent_exited_is_not_stale(self) -> None:
        entry = ContainerEntry("job", ContainerState.EXITED, elapsed_seconds=3600, exit_code=0)
        assert not is_stale(entry, 8 * 3600)

    def test_long_running_is_not_stale(self) -> None:
        entry = ContainerEntry("db", ContainerState.RUNNING, elapsed_seconds=30 * 86400)
        assert not is_stale(entry, 8 * 3600)
