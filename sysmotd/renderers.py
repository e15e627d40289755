"""Segment renderers.

A renderer wraps one Info snapshot. ``height()`` says how many rows it needs
and depends on the snapshot alone; ``render()`` paints into the region the
pipeline hands it and never performs I/O.
"""

from __future__ import annotations

import math
import textwrap
from abc import ABC, abstractmethod

from sysmotd.formatting import (
    Severity,
    classify,
    container_status,
    fmt_bytes,
    format_uptime,
    is_stale,
)
from sysmotd.info import (
    CommandInfo,
    ContainerEntry,
    ContainerState,
    DiskInfo,
    DockerInfo,
    HeadingInfo,
    IpInfo,
    LoadInfo,
    MemoryInfo,
    OsInfo,
    QuoteInfo,
    TemperatureInfo,
    UpdatesInfo,
    UptimeInfo,
    UserInfo,
)
from sysmotd.terminal import DIM, GREEN, LABEL, PLAIN, RED, YELLOW, Region, Style

LABEL_WIDTH = 16
BAR_FILL = "█"
BAR_EMPTY = "░"
UNAVAILABLE = Style(fg="yellow", dim=True)

SEVERITY_STYLE: dict[Severity, Style] = {
    Severity.OK: GREEN,
    Severity.WARNING: YELLOW,
    Severity.CRITICAL: RED,
}


class SegmentRenderer(ABC):
    @abstractmethod
    def height(self) -> int: ...

    @abstractmethod
    def render(self, region: Region) -> None: ...


class LabelledRenderer(SegmentRenderer):
    """Blue label in a fixed left column, data to its right."""

    label = ""

    def height(self) -> int:
        return 1

    def render(self, region: Region) -> None:
        label_region, data = region.columns(LABEL_WIDTH)
        # Two columns of padding between label and data
        label_region.write(0, 0, self.label[: LABEL_WIDTH - 2], LABEL)
        self.render_data(data)

    @abstractmethod
    def render_data(self, region: Region) -> None: ...


# ── Placeholder ────────────────────────────────────────────────────────────


class UnavailableRenderer(LabelledRenderer):
    """Stands in for a segment whose data could not be collected."""

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason

    def render_data(self, region: Region) -> None:
        region.write(0, 0, f"unavailable: {self.reason}", UNAVAILABLE)


# ── Scalar segments ────────────────────────────────────────────────────────


class UserRenderer(LabelledRenderer):
    label = "User"

    def __init__(self, info: UserInfo) -> None:
        self.info = info

    def render_data(self, region: Region) -> None:
        region.write(0, 0, f"{self.info.username}@{self.info.hostname}")


class IpRenderer(LabelledRenderer):
    label = "IP address"

    def __init__(self, info: IpInfo) -> None:
        self.info = info

    def render_data(self, region: Region) -> None:
        region.write(0, 0, self.info.ip_address)


class OsRenderer(LabelledRenderer):
    label = "OS"

    def __init__(self, info: OsInfo) -> None:
        self.info = info

    def render_data(self, region: Region) -> None:
        region.write(0, 0, self.info.name)


class UptimeRenderer(LabelledRenderer):
    label = "Uptime"

    def __init__(self, info: UptimeInfo) -> None:
        self.info = info

    def render_data(self, region: Region) -> None:
        region.write(0, 0, format_uptime(self.info.seconds))


class LoadRenderer(LabelledRenderer):
    """Load averages colored against per-core thresholds."""

    label = "Load average"

    def __init__(
        self,
        info: LoadInfo,
        warning_per_core: float = 0.9,
        critical_per_core: float = 1.5,
    ) -> None:
        self.info = info
        self.warning = info.cores * warning_per_core
        self.critical = info.cores * critical_per_core

    def severity(self, load: float) -> Severity:
        return classify(load, self.warning, self.critical)

    def render_data(self, region: Region) -> None:
        spans: list[tuple[str, Style]] = []
        for i, load in enumerate(self.info.loads):
            if i:
                spans.append((", ", PLAIN))
            spans.append((f"{load:.2f}", SEVERITY_STYLE[self.severity(load)]))
        spans.append((f" (across {self.info.cores} cores)", PLAIN))
        region.write_spans(0, 0, spans)


class MemoryRenderer(LabelledRenderer):
    label = "RAM"

    def __init__(
        self,
        info: MemoryInfo,
        warning: float = 0.80,
        critical: float = 0.90,
    ) -> None:
        self.info = info
        self.warning = warning
        self.critical = critical

    def severity(self) -> Severity:
        if self.info.total_bytes <= 0:
            return Severity.OK
        ratio = self.info.used_bytes / self.info.total_bytes
        return classify(ratio, self.warning, self.critical)

    def render_data(self, region: Region) -> None:
        style = SEVERITY_STYLE[self.severity()]
        region.write_spans(0, 0, [
            ("RAM - ", PLAIN),
            (f"{fmt_bytes(self.info.used_bytes)} used", style),
            (f", {fmt_bytes(self.info.available_bytes)} available", PLAIN),
            (f" / {fmt_bytes(self.info.total_bytes)}", PLAIN),
        ])


class TemperatureRenderer(LabelledRenderer):
    """Sensor readings; ``high`` defaults to 20 °C under ``critical``."""

    label = "Temperatures"

    def __init__(self, info: TemperatureInfo) -> None:
        self.info = info

    def render_data(self, region: Region) -> None:
        if not self.info.readings:
            region.write(0, 0, "n/a", DIM)
            return
        spans: list[tuple[str, Style]] = []
        for i, reading in enumerate(self.info.readings):
            critical = reading.critical or 100.0
            high = reading.high or (critical - 20.0)
            if i:
                spans.append((", ", PLAIN))
            spans.append((
                f"{reading.current:.1f}°C",
                SEVERITY_STYLE[classify(reading.current, high, critical)],
            ))
        region.write_spans(0, 0, spans)


class UpdatesRenderer(LabelledRenderer):
    label = "Updates"

    def __init__(self, info: UpdatesInfo) -> None:
        self.info = info

    def height(self) -> int:
        return 1 + len(self.info.updates)

    def render_data(self, region: Region) -> None:
        count = len(self.info.updates)
        if not count:
            region.write(0, 0, "No updates available", GREEN)
            return
        region.write(0, 0, f"{count} update{'' if count == 1 else 's'} available", YELLOW)
        for row, update in enumerate(self.info.updates, start=1):
            region.write(row, 2, update, DIM)


# ── Multi-row segments ─────────────────────────────────────────────────────


class DiskRenderer(LabelledRenderer):
    """Two rows per disk: a text summary and a usage gauge."""

    label = "Disk"

    def __init__(
        self,
        info: DiskInfo,
        warning: float = 0.80,
        critical: float = 0.90,
    ) -> None:
        self.info = info
        self.warning = warning
        self.critical = critical

    def height(self) -> int:
        return max(1, 2 * len(self.info.disks))

    def render_data(self, region: Region) -> None:
        if not self.info.disks:
            region.write(0, 0, "No disks", DIM)
            return
        for i, disk in enumerate(self.info.disks):
            row = 2 * i
            region.write(
                row,
                0,
                f"{disk.name} ({disk.mount_point}) - {fmt_bytes(disk.used_bytes)} used, "
                f"{fmt_bytes(disk.free_bytes)} free / {fmt_bytes(disk.total_bytes)}",
            )
            ratio = disk.used_ratio
            style = SEVERITY_STYLE[classify(ratio, self.warning, self.critical)]
            suffix = f" {ratio * 100:3.0f}%"
            bar_w = max(0, region.width - len(suffix) - 1)
            filled = int(bar_w * min(ratio, 1.0))
            region.write_spans(row + 1, 0, [
                (BAR_FILL * filled, Style(fg=style.fg, bold=True)),
                (BAR_EMPTY * (bar_w - filled), DIM),
                (suffix, style),
            ])


class DockerRenderer(LabelledRenderer):
    """Container rows, hiding exited containers past the staleness window."""

    label = "Docker"

    def __init__(self, info: DockerInfo, stale_after_hours: float = 8) -> None:
        self.info = info
        self.stale_after_seconds = stale_after_hours * 3600

    def visible(self) -> list[ContainerEntry]:
        return [c for c in self.info.containers if not is_stale(c, self.stale_after_seconds)]

    def height(self) -> int:
        if not self.info.available:
            return 1
        return max(1, len(self.visible()))

    @staticmethod
    def _status_style(entry: ContainerEntry) -> Style:
        if entry.state is ContainerState.RUNNING:
            return GREEN
        if entry.state is ContainerState.EXITED:
            return DIM if entry.exit_code == 0 else RED
        return YELLOW

    def render_data(self, region: Region) -> None:
        if not self.info.available:
            region.write(0, 0, f"unavailable: {self.info.unavailable_reason}", UNAVAILABLE)
            return
        containers = self.visible()
        if not containers:
            region.write(0, 0, "No containers", DIM)
            return
        for row, entry in enumerate(containers):
            region.write_spans(row, 0, [
                (f"{entry.name:<40} ", PLAIN),
                (container_status(entry), self._status_style(entry)),
            ])


class CommandRenderer(LabelledRenderer):
    def __init__(self, info: CommandInfo, label: str = "Command") -> None:
        self.info = info
        self.label = label

    def height(self) -> int:
        return max(1, len(self.info.output.splitlines()))

    def render_data(self, region: Region) -> None:
        for row, line in enumerate(self.info.output.splitlines()):
            region.write(row, 0, line)


# ── Decorative segments ────────────────────────────────────────────────────


def rainbow(freq: float, i: float) -> tuple[int, int, int]:
    """lolcat's rainbow: three phase-shifted sine waves."""
    red = int(math.sin(freq * i) * 127) + 128
    green = int(math.sin(freq * i + 2 * math.pi / 3) * 127) + 128
    blue = int(math.sin(freq * i + 4 * math.pi / 3) * 127) + 128
    return red, green, blue


class HeadingRenderer(SegmentRenderer):
    """Figlet banner painted with a rainbow gradient."""

    def __init__(self, info: HeadingInfo, freq: float = 0.1, spread: float = 3.0) -> None:
        self.info = info
        self.freq = freq
        self.spread = spread
        self.lines = info.figure.splitlines()

    def height(self) -> int:
        return max(1, len(self.lines))

    def render(self, region: Region) -> None:
        for row, line in enumerate(self.lines):
            for col, ch in enumerate(line):
                if col >= region.width:
                    break
                if ch == " ":
                    continue
                color = rainbow(self.freq, self.info.seed + row + col / self.spread)
                region.write(row, col, ch, Style(fg=color))


class QuoteRenderer(SegmentRenderer):
    """Fortune text, wrapped, indented and dimmed."""

    indent = " " * 7

    def __init__(self, info: QuoteInfo, width: int = 80) -> None:
        self.info = info
        self.lines: list[str] = []
        for paragraph in info.text.splitlines():
            wrapped = textwrap.wrap(paragraph, max(1, width - len(self.indent))) or [""]
            self.lines.extend(self.indent + line for line in wrapped)

    def height(self) -> int:
        return max(1, len(self.lines))

    def render(self, region: Region) -> None:
        for row, line in enumerate(self.lines):
            region.write(row, 0, line, DIM)
