"""Text formatting helpers shared by the segment renderers."""

from __future__ import annotations

import math
from enum import Enum

from sysmotd.info import ContainerEntry, ContainerState

# ── Byte counts ────────────────────────────────────────────────────────────

_UNITS: dict[str, int] = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}


def fmt_bytes(n: int | float, unit: str = "GB") -> str:
    """Byte count in a fixed unit.

    Values below 2 units keep two decimals, anything larger is rounded
    half-up to a whole number: ``1.40 GB``, ``3 GB``.
    """
    v = float(n) / _UNITS[unit]
    if v < 2:
        return f"{v:.2f} {unit}"
    return f"{math.floor(v + 0.5)} {unit}"


# ── Durations ──────────────────────────────────────────────────────────────

_DURATION_UNITS = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def _split_duration(seconds: float) -> list[tuple[int, str]]:
    remaining = max(0, int(seconds))
    parts: list[tuple[int, str]] = []
    for unit, size in _DURATION_UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append((count, unit))
    return parts


def format_uptime(seconds: float) -> str:
    """Every non-zero unit: ``1 day, 2 hours, 3 minutes, 4 seconds``."""
    parts = _split_duration(seconds)
    if not parts:
        return _plural(0, "second")
    return ", ".join(_plural(count, unit) for count, unit in parts)


def humanize_elapsed(seconds: float) -> str:
    """Rough elapsed time in the coarsest non-zero unit (``3 hours``)."""
    if seconds < 60:
        return "less than a minute"
    count, unit = _split_duration(seconds)[0]
    return _plural(count, unit)


# ── Severity ───────────────────────────────────────────────────────────────


class Severity(str, Enum):
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


def classify(value: float, warning: float, critical: float) -> Severity:
    """Bucket a value against two thresholds; both bounds are inclusive."""
    if value >= critical:
        return Severity.CRITICAL
    if value >= warning:
        return Severity.WARNING
    return Severity.OK


# ── Containers ─────────────────────────────────────────────────────────────


def container_status(entry: ContainerEntry) -> str:
    """Docker-style status column: ``Up 2 hours``, ``Exited (1) 3 days ago``."""
    if entry.state is ContainerState.RUNNING:
        return f"Up {humanize_elapsed(entry.elapsed_seconds)}"
    if entry.state is ContainerState.EXITED:
        code = entry.exit_code if entry.exit_code is not None else 0
        return f"Exited ({code}) {humanize_elapsed(entry.elapsed_seconds)} ago"
    if entry.state is ContainerState.EMPTY:
        return "Empty"
    return entry.state.value.capitalize()


def is_stale(entry: ContainerEntry, stale_after_seconds: float) -> bool:
    """True for exited containers that stopped longer ago than the window."""
    return (
        entry.state is ContainerState.EXITED
        and entry.elapsed_seconds > stale_after_seconds
    )
