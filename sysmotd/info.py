"""Immutable snapshots produced by the segment builders.

Each segment kind has exactly one Info type holding the values its renderer
needs. Snapshots are plain values: no psutil objects, sockets or clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class UserInfo:
    username: str
    hostname: str


@dataclass(frozen=True)
class IpInfo:
    ip_address: str


@dataclass(frozen=True)
class OsInfo:
    name: str


@dataclass(frozen=True)
class UptimeInfo:
    seconds: float


@dataclass(frozen=True)
class LoadInfo:
    loads: tuple[float, float, float]
    cores: int


@dataclass(frozen=True)
class MemoryInfo:
    used_bytes: int
    available_bytes: int
    total_bytes: int


@dataclass(frozen=True)
class DiskEntry:
    name: str
    mount_point: str
    used_bytes: int
    free_bytes: int
    total_bytes: int

    @property
    def used_ratio(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.used_bytes / self.total_bytes


@dataclass(frozen=True)
class DiskInfo:
    disks: tuple[DiskEntry, ...] = ()


@dataclass(frozen=True)
class TemperatureReading:
    label: str
    current: float
    high: float | None = None
    critical: float | None = None


@dataclass(frozen=True)
class TemperatureInfo:
    readings: tuple[TemperatureReading, ...] = ()


class ContainerState(str, Enum):
    """Lifecycle states reported by the Docker Engine API."""

    EMPTY = ""
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    EXITED = "exited"
    DEAD = "dead"


@dataclass(frozen=True)
class ContainerEntry:
    """One container row.

    ``exit_code`` is only set for exited containers. ``elapsed_seconds`` is
    the time since the container entered its current state and is never
    negative.
    """

    name: str
    state: ContainerState
    elapsed_seconds: float = 0.0
    exit_code: int | None = None


@dataclass(frozen=True)
class DockerInfo:
    containers: tuple[ContainerEntry, ...] = ()
    unavailable_reason: str | None = None

    @property
    def available(self) -> bool:
        return self.unavailable_reason is None


@dataclass(frozen=True)
class UpdatesInfo:
    updates: tuple[str, ...] = ()


@dataclass(frozen=True)
class HeadingInfo:
    text: str
    figure: str
    font: str
    seed: float = 0.0


@dataclass(frozen=True)
class QuoteInfo:
    text: str


@dataclass(frozen=True)
class CommandInfo:
    output: str
