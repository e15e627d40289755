"""Configuration loading for sysmotd.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sysmotd/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "timeout": 5.0,
    "strict": False,
    "color": "auto",
    "segments": [
        "heading",
        "quote",
        "user",
        "ip",
        "os",
        "uptime",
        "load",
        "memory",
        "updates",
        "disk",
        "temperatures",
        "docker",
    ],
    "thresholds": {
        "memory": {"warning": 0.80, "critical": 0.90},
        "disk": {"warning": 0.80, "critical": 0.90},
        "load_per_core": {"warning": 0.9, "critical": 1.5},
    },
    "disk": {
        # macOS mounts the data volume a second time under the root volume
        "exclude_mounts": ["/System/Volumes/Data"],
        "exclude_fstypes": ["squashfs"],
    },
    "docker": {
        "socket": "/var/run/docker.sock",
        "stale_after_hours": 8,
        "max_concurrent_inspects": 4,
    },
    "updates": {
        "source": "command",
        "command": ["softwareupdate", "--list"],
        "sentinel": "No new software available.",
        "metadata_path": "/var/lib/sysmotd/updates.json",
    },
    "temperatures": {"label_prefix": "Core"},
    "heading": {
        "text": "",
        "fortune_file": "",
        "fonts": ["standard", "slant", "small", "big"],
        "width": 80,
    },
    "quote": {
        "fortune_file": "/usr/share/games/fortunes/fortunes",
        "width": 80,
    },
    "command": {"label": "Command", "argv": []},
}

_DEFAULT_PATH = Path.home() / ".config" / "sysmotd" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Merge one level: overlay sub-keys into base sub-keys
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sysmotd/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"sysmotd: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"sysmotd: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"sysmotd: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    return str(value)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# sysmotd configuration",
        "# Place this file at ~/.config/sysmotd/config.toml",
        "",
    ]

    tables: list[tuple[str, dict[str, Any]]] = []
    for key, value in DEFAULT_CONFIG.items():
        if isinstance(value, dict):
            tables.append((key, value))
        else:
            lines.append(f"{key} = {_toml_value(value)}")
    lines.append("")

    for name, table in tables:
        nested = {k: v for k, v in table.items() if isinstance(v, dict)}
        flat = {k: v for k, v in table.items() if not isinstance(v, dict)}
        if flat:
            lines.append(f"[{name}]")
            for key, value in flat.items():
                lines.append(f"{key} = {_toml_value(value)}")
            lines.append("")
        for sub, levels in nested.items():
            lines.append(f"[{name}.{sub}]")
            for key, value in levels.items():
                lines.append(f"{key} = {_toml_value(value)}")
            lines.append("")

    return "\n".join(lines) + "\n"
