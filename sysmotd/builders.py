"""Segment builders backed by local system probes.

Every builder exposes ``async build()`` returning one Info snapshot. psutil
and friends are synchronous, so the probe runs in a worker thread and the
event loop stays free for the slow builders (Docker, subprocesses).
"""

from __future__ import annotations

import asyncio
import getpass
import logging
import os
import platform
import socket
import time
from collections.abc import Iterable
from typing import Any, Protocol, TypeVar

import psutil

from sysmotd.errors import BuildError
from sysmotd.info import (
    DiskEntry,
    DiskInfo,
    IpInfo,
    LoadInfo,
    MemoryInfo,
    OsInfo,
    TemperatureInfo,
    TemperatureReading,
    UptimeInfo,
    UserInfo,
)

log = logging.getLogger(__name__)

InfoT = TypeVar("InfoT", covariant=True)


class InfoBuilder(Protocol[InfoT]):
    async def build(self) -> InfoT: ...


def _read_failed(what: str, error: Exception) -> BuildError:
    # psutil errors without pid/name details stringify to ""
    return BuildError(f"cannot read {what}: {str(error) or type(error).__name__}")


# ── Identity ───────────────────────────────────────────────────────────────


class UserInfoBuilder:
    async def build(self) -> UserInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> UserInfo:
        try:
            username = getpass.getuser()
        except (KeyError, OSError) as e:
            raise BuildError(f"cannot determine current user: {e}") from e
        return UserInfo(username=username, hostname=socket.gethostname())


class IpInfoBuilder:
    """Primary IPv4 address: the local end of a route to ``probe_address``.

    Connecting a UDP socket only selects a route; nothing is sent.
    """

    def __init__(self, probe_address: str = "192.0.2.1") -> None:
        self.probe_address = probe_address

    async def build(self) -> IpInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> IpInfo:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.connect((self.probe_address, 9))
                address = sock.getsockname()[0]
        except OSError as e:
            raise BuildError(f"no network route: {e.strerror or e}") from e
        return IpInfo(ip_address=address)


class OsInfoBuilder:
    async def build(self) -> OsInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> OsInfo:
        system = platform.system()
        if system == "Darwin":
            name = f"macOS {platform.mac_ver()[0]}".strip()
        else:
            try:
                name = platform.freedesktop_os_release()["PRETTY_NAME"]
            except (OSError, KeyError):
                name = f"{system} {platform.release()}".strip()
        machine = platform.machine()
        return OsInfo(name=f"{name} ({machine})" if machine else name)


# ── Metrics ────────────────────────────────────────────────────────────────


class UptimeInfoBuilder:
    async def build(self) -> UptimeInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> UptimeInfo:
        try:
            booted = psutil.boot_time()
        except (psutil.Error, OSError) as e:
            raise _read_failed("boot time", e) from e
        return UptimeInfo(seconds=max(0.0, time.time() - booted))


class LoadInfoBuilder:
    async def build(self) -> LoadInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> LoadInfo:
        try:
            load1, load5, load15 = os.getloadavg()
        except OSError as e:
            raise BuildError("load average not available") from e
        try:
            cores = psutil.cpu_count(logical=False) or 1
        except (psutil.Error, OSError) as e:
            raise _read_failed("CPU core count", e) from e
        return LoadInfo(loads=(load1, load5, load15), cores=cores)


class MemoryInfoBuilder:
    async def build(self) -> MemoryInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> MemoryInfo:
        try:
            ram = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            raise _read_failed("memory usage", e) from e
        return MemoryInfo(
            used_bytes=ram.total - ram.available,
            available_bytes=ram.available,
            total_bytes=ram.total,
        )


class DiskInfoBuilder:
    """Mounted volumes with raw byte counts.

    Args:
        exclude_mounts: Mount points to leave out, e.g. a data volume that
            mirrors the root volume.
        exclude_fstypes: Filesystem types to leave out (squashfs snaps, ...).
    """

    def __init__(
        self,
        exclude_mounts: Iterable[str] = (),
        exclude_fstypes: Iterable[str] = (),
    ) -> None:
        self.exclude_mounts = frozenset(exclude_mounts)
        self.exclude_fstypes = frozenset(exclude_fstypes)

    async def build(self) -> DiskInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> DiskInfo:
        disks: list[DiskEntry] = []
        seen: set[str] = set()
        try:
            partitions = psutil.disk_partitions(all=False)
        except (psutil.Error, OSError) as e:
            raise _read_failed("mounted volumes", e) from e
        for part in partitions:
            if part.mountpoint in self.exclude_mounts:
                continue
            if part.fstype in self.exclude_fstypes or part.mountpoint in seen:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except PermissionError:
                log.debug("skipping unreadable mount %s", part.mountpoint)
                continue
            except OSError as e:
                raise BuildError(f"cannot stat {part.mountpoint}: {e}") from e
            seen.add(part.mountpoint)
            disks.append(DiskEntry(
                name=part.device,
                mount_point=part.mountpoint,
                used_bytes=usage.total - usage.free,
                free_bytes=usage.free,
                total_bytes=usage.total,
            ))
        return DiskInfo(disks=tuple(disks))


class TemperatureInfoBuilder:
    def __init__(self, label_prefix: str = "Core") -> None:
        self.label_prefix = label_prefix

    async def build(self) -> TemperatureInfo:
        return await asyncio.to_thread(self.collect)

    def collect(self) -> TemperatureInfo:
        try:
            temps: dict[str, Any] = psutil.sensors_temperatures()
        except AttributeError:
            # psutil has no sensor support on this platform
            return TemperatureInfo()
        except (psutil.Error, OSError) as e:
            raise _read_failed("sensors", e) from e
        readings: list[TemperatureReading] = []
        for entries in temps.values():
            for entry in entries:
                if not entry.label.startswith(self.label_prefix):
                    continue
                readings.append(TemperatureReading(
                    label=entry.label,
                    current=float(entry.current),
                    high=float(entry.high) if entry.high else None,
                    critical=float(entry.critical) if entry.critical else None,
                ))
        return TemperatureInfo(readings=tuple(readings))
