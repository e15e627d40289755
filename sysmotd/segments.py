"""The closed set of segment kinds and how config turns into segments."""

from __future__ import annotations

import functools
from collections.abc import Callable
from pathlib import Path
from typing import Any

from sysmotd.builders import (
    DiskInfoBuilder,
    IpInfoBuilder,
    LoadInfoBuilder,
    MemoryInfoBuilder,
    OsInfoBuilder,
    TemperatureInfoBuilder,
    UptimeInfoBuilder,
    UserInfoBuilder,
)
from sysmotd.commands import (
    CommandInfoBuilder,
    HeadingInfoBuilder,
    QuoteInfoBuilder,
    UpdatesInfoBuilder,
)
from sysmotd.config import DEFAULT_CONFIG
from sysmotd.docker import DockerInfoBuilder
from sysmotd.pipeline import Segment
from sysmotd.renderers import (
    CommandRenderer,
    DiskRenderer,
    DockerRenderer,
    HeadingRenderer,
    IpRenderer,
    LoadRenderer,
    MemoryRenderer,
    OsRenderer,
    QuoteRenderer,
    TemperatureRenderer,
    UpdatesRenderer,
    UptimeRenderer,
    UserRenderer,
)


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    return {**DEFAULT_CONFIG[name], **config.get(name, {})}


def _levels(config: dict[str, Any], metric: str) -> tuple[float, float]:
    thresh: dict[str, Any] = config.get("thresholds", DEFAULT_CONFIG["thresholds"])
    defaults = DEFAULT_CONFIG["thresholds"][metric]
    levels = thresh.get(metric, {})
    warn = float(levels.get("warning", defaults["warning"]))
    crit = float(levels.get("critical", defaults["critical"]))
    return warn, crit


def _optional_path(value: str) -> Path | None:
    return Path(value).expanduser() if value else None


# ── Factories ──────────────────────────────────────────────────────────────


def _heading(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "heading")
    builder = HeadingInfoBuilder(
        fonts=cfg["fonts"],
        text=cfg["text"],
        fortune_file=_optional_path(cfg["fortune_file"]),
        width=int(cfg["width"]),
    )
    return Segment("heading", "Heading", builder, HeadingRenderer)


def _quote(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "quote")
    builder = QuoteInfoBuilder(Path(cfg["fortune_file"]).expanduser())
    renderer = functools.partial(QuoteRenderer, width=int(cfg["width"]))
    return Segment("quote", "Quote", builder, renderer)


def _user(config: dict[str, Any]) -> Segment:
    return Segment("user", UserRenderer.label, UserInfoBuilder(), UserRenderer)


def _ip(config: dict[str, Any]) -> Segment:
    return Segment("ip", IpRenderer.label, IpInfoBuilder(), IpRenderer)


def _os(config: dict[str, Any]) -> Segment:
    return Segment("os", OsRenderer.label, OsInfoBuilder(), OsRenderer)


def _uptime(config: dict[str, Any]) -> Segment:
    return Segment("uptime", UptimeRenderer.label, UptimeInfoBuilder(), UptimeRenderer)


def _load(config: dict[str, Any]) -> Segment:
    warn, crit = _levels(config, "load_per_core")
    renderer = functools.partial(
        LoadRenderer, warning_per_core=warn, critical_per_core=crit
    )
    return Segment("load", LoadRenderer.label, LoadInfoBuilder(), renderer)


def _memory(config: dict[str, Any]) -> Segment:
    warn, crit = _levels(config, "memory")
    renderer = functools.partial(MemoryRenderer, warning=warn, critical=crit)
    return Segment("memory", MemoryRenderer.label, MemoryInfoBuilder(), renderer)


def _updates(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "updates")
    builder = UpdatesInfoBuilder(
        source=cfg["source"],
        command=cfg["command"],
        sentinel=cfg["sentinel"],
        metadata_path=_optional_path(cfg["metadata_path"]),
    )
    return Segment("updates", UpdatesRenderer.label, builder, UpdatesRenderer)


def _disk(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "disk")
    warn, crit = _levels(config, "disk")
    builder = DiskInfoBuilder(
        exclude_mounts=cfg["exclude_mounts"],
        exclude_fstypes=cfg["exclude_fstypes"],
    )
    renderer = functools.partial(DiskRenderer, warning=warn, critical=crit)
    return Segment("disk", DiskRenderer.label, builder, renderer)


def _temperatures(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "temperatures")
    builder = TemperatureInfoBuilder(label_prefix=cfg["label_prefix"])
    return Segment("temperatures", TemperatureRenderer.label, builder, TemperatureRenderer)


def _docker(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "docker")
    builder = DockerInfoBuilder(
        socket_path=cfg["socket"],
        timeout=float(config.get("timeout", DEFAULT_CONFIG["timeout"])),
        max_concurrent_inspects=int(cfg["max_concurrent_inspects"]),
    )
    renderer = functools.partial(
        DockerRenderer, stale_after_hours=float(cfg["stale_after_hours"])
    )
    return Segment("docker", DockerRenderer.label, builder, renderer)


def _command(config: dict[str, Any]) -> Segment:
    cfg = _section(config, "command")
    label = str(cfg["label"])
    builder = CommandInfoBuilder(cfg["argv"])
    renderer = functools.partial(CommandRenderer, label=label)
    return Segment("command", label, builder, renderer)


SEGMENT_FACTORIES: dict[str, Callable[[dict[str, Any]], Segment]] = {
    "heading": _heading,
    "quote": _quote,
    "user": _user,
    "ip": _ip,
    "os": _os,
    "uptime": _uptime,
    "load": _load,
    "memory": _memory,
    "updates": _updates,
    "disk": _disk,
    "temperatures": _temperatures,
    "docker": _docker,
    "command": _command,
}


def build_segments(config: dict[str, Any]) -> list[Segment]:
    """Segments named in ``config["segments"]``, in that order.

    Raises:
        ValueError: Unknown segment name, or a segment section that can't be
            used (e.g. the command segment without an argv).
    """
    segments: list[Segment] = []
    for name in config.get("segments", DEFAULT_CONFIG["segments"]):
        factory = SEGMENT_FACTORIES.get(name)
        if factory is None:
            known = ", ".join(SEGMENT_FACTORIES)
            raise ValueError(f"unknown segment {name!r} (known: {known})")
        segments.append(factory(config))
    return segments
