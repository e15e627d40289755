"""Segment builders that shell out or read text files.

Covers the update check, the figlet heading, fortune-file quotes and the
free-form command segment.
"""

from __future__ import annotations

import asyncio
import json
import logging
import platform
import random
import re
import socket
from collections.abc import Callable, Sequence
from pathlib import Path

from sysmotd.errors import BuildError, CommandError
from sysmotd.info import CommandInfo, HeadingInfo, QuoteInfo, UpdatesInfo

log = logging.getLogger(__name__)


async def run_command(argv: Sequence[str]) -> str:
    """Run ``argv`` and return its stdout decoded as UTF-8.

    Raises:
        CommandError: The command can't be spawned, exits non-zero, or its
            output isn't valid UTF-8.
    """
    argv = list(argv)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        raise CommandError.spawn_failed(argv, e) from e

    try:
        stdout, _ = await proc.communicate()
    finally:
        # Cancelled or timed out: kill and reap the child
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass  # exited on its own, still needs reaping
            await proc.wait()

    if proc.returncode != 0:
        raise CommandError.failed(argv, proc.returncode or 0)
    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CommandError.undecodable(argv, e) from e


# ── Fortune files ──────────────────────────────────────────────────────────


def read_fortunes(path: Path) -> list[str]:
    """Entries of a fortune file (separated by lines holding a single ``%``)."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise BuildError(f"fortune file {path} does not exist") from e
    except IsADirectoryError as e:
        raise BuildError(f"{path} is a directory, not a fortune file") from e
    except UnicodeDecodeError as e:
        raise BuildError(f"fortune file {path} is not valid UTF-8") from e
    except OSError as e:
        raise BuildError(f"cannot read fortune file {path}: {e}") from e
    entries = re.split(r"^%\s*$", content, flags=re.MULTILINE)
    return [entry.strip("\n") for entry in entries if entry.strip()]


def choose_fortune(path: Path, rng: random.Random) -> str:
    fortunes = read_fortunes(path)
    if not fortunes:
        raise BuildError(f"no fortunes available in {path}")
    return rng.choice(fortunes)


class QuoteInfoBuilder:
    def __init__(self, fortune_file: Path, rng: random.Random | None = None) -> None:
        self.fortune_file = fortune_file
        self.rng = rng or random.Random()

    async def build(self) -> QuoteInfo:
        text = await asyncio.to_thread(choose_fortune, self.fortune_file, self.rng)
        return QuoteInfo(text=text)


# ── Heading ────────────────────────────────────────────────────────────────


class HeadingInfoBuilder:
    """Figlet banner in a random font.

    The banner text is ``text`` when set, otherwise a random entry of
    ``fortune_file``, otherwise the host name.
    """

    def __init__(
        self,
        fonts: Sequence[str],
        text: str = "",
        fortune_file: Path | None = None,
        width: int = 80,
        rng: random.Random | None = None,
    ) -> None:
        if not fonts:
            raise ValueError("heading needs at least one figlet font")
        self.fonts = list(fonts)
        self.text = text
        self.fortune_file = fortune_file
        self.width = width
        self.rng = rng or random.Random()

    async def _heading_text(self) -> str:
        if self.text:
            return self.text
        if self.fortune_file is not None:
            fortune = await asyncio.to_thread(choose_fortune, self.fortune_file, self.rng)
            return fortune.strip()
        return socket.gethostname().split(".")[0]

    async def build(self) -> HeadingInfo:
        text = await self._heading_text()
        font = self.rng.choice(self.fonts)
        figure = await run_command(["figlet", "-w", str(self.width), "-f", font, text])
        return HeadingInfo(
            text=text,
            figure=figure.rstrip("\n"),
            font=font,
            seed=self.rng.uniform(0, 256),
        )


# ── Updates ────────────────────────────────────────────────────────────────

NO_UPDATES_SENTINEL = "No new software available."


def parse_update_list(stdout: str, sentinel: str = NO_UPDATES_SENTINEL) -> tuple[str, ...]:
    """Updates listed by ``softwareupdate --list``.

    Each update is announced on a line marked with ``*``, e.g.
    ``* Label: macOS Sonoma 14.2.1-23C71``.
    """
    if sentinel and sentinel in stdout:
        return ()
    updates: list[str] = []
    for line in stdout.splitlines():
        if "*" not in line:
            continue
        description = line.split("*", 1)[1].strip()
        description = description.removeprefix("Label:").strip()
        updates.append(description)
    return tuple(updates)


def version_key(version: str) -> tuple[int, int, int]:
    """major.minor.patch of a version string; missing parts count as 0."""
    core = re.split(r"[-+]", version.strip(), maxsplit=1)[0]
    numbers = [int(n) for n in re.findall(r"\d+", core)[:3]]
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def newer_candidates(candidates: Sequence[dict[str, str]], current: str) -> tuple[str, ...]:
    """``name version`` of every candidate newer than ``current``."""
    installed = version_key(current)
    updates: list[str] = []
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        version = str(candidate.get("version", ""))
        if version and version_key(version) > installed:
            name = str(candidate.get("name", "")).strip()
            updates.append(f"{name} {version}".strip())
    return tuple(updates)


def current_os_version() -> str:
    return platform.mac_ver()[0] or platform.release()


class UpdatesInfoBuilder:
    """Pending system updates.

    ``source="command"`` parses the update command's listing;
    ``source="metadata"`` diffs a JSON file of candidate versions against the
    running OS version.
    """

    def __init__(
        self,
        source: str = "command",
        command: Sequence[str] = ("softwareupdate", "--list"),
        sentinel: str = NO_UPDATES_SENTINEL,
        metadata_path: Path | None = None,
        os_version: Callable[[], str] = current_os_version,
    ) -> None:
        if source not in ("command", "metadata"):
            raise ValueError(f"unknown updates source: {source!r}")
        if source == "metadata" and metadata_path is None:
            raise ValueError("updates source 'metadata' needs metadata_path")
        self.source = source
        self.command = list(command)
        self.sentinel = sentinel
        self.metadata_path = metadata_path
        self.os_version = os_version

    async def build(self) -> UpdatesInfo:
        if self.metadata_path is not None and self.source == "metadata":
            return await asyncio.to_thread(self._from_metadata, self.metadata_path)
        stdout = await run_command(self.command)
        return UpdatesInfo(updates=parse_update_list(stdout, self.sentinel))

    def _from_metadata(self, path: Path) -> UpdatesInfo:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise BuildError(f"cannot read {path}: {e}") from e
        except ValueError as e:
            raise BuildError(f"invalid update metadata in {path}: {e}") from e
        candidates = data.get("candidates", []) if isinstance(data, dict) else []
        if not isinstance(candidates, list):
            raise BuildError(f"'candidates' in {path} is not a list")
        current = self.os_version()
        log.debug("comparing %d update candidates against %s", len(candidates), current)
        return UpdatesInfo(updates=newer_candidates(candidates, current))


# ── Command ────────────────────────────────────────────────────────────────


class CommandInfoBuilder:
    def __init__(self, argv: Sequence[str]) -> None:
        if not argv:
            raise ValueError("command segment needs a non-empty argv")
        self.argv = list(argv)

    async def build(self) -> CommandInfo:
        return CommandInfo(output=(await run_command(self.argv)).rstrip("\n"))
