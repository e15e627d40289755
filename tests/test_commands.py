"""Tests for sysmotd.commands."""

from __future__ import annotations

import asyncio
import json
import random
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sysmotd.commands import (
    CommandInfoBuilder,
    HeadingInfoBuilder,
    QuoteInfoBuilder,
    UpdatesInfoBuilder,
    choose_fortune,
    newer_candidates,
    parse_update_list,
    read_fortunes,
    run_command,
    version_key,
)
from sysmotd.errors import BuildError, CommandError

PY = sys.executable


# ── run_command ────────────────────────────────────────────────────────────


class TestRunCommand:
    def test_returns_stdout(self) -> None:
        out = asyncio.run(run_command([PY, "-c", "print('hello')"]))
        assert out.strip() == "hello"

    def test_nonzero_exit(self) -> None:
        with pytest.raises(CommandError, match="exited with status 3"):
            asyncio.run(run_command([PY, "-c", "raise SystemExit(3)"]))

    def test_missing_program(self) -> None:
        with pytest.raises(CommandError, match="could not be started"):
            asyncio.run(run_command(["sysmotd-no-such-program-xyz"]))

    def test_invalid_utf8(self) -> None:
        script = "import sys; sys.stdout.buffer.write(b'\\xff\\xfe')"
        with pytest.raises(CommandError, match="not valid UTF-8"):
            asyncio.run(run_command([PY, "-c", script]))

    def test_error_names_the_command(self) -> None:
        with pytest.raises(CommandError) as exc_info:
            asyncio.run(run_command([PY, "-c", "raise SystemExit(1)"]))
        assert exc_info.value.argv[0] == PY
        assert str(exc_info.value).startswith(f"`{PY} -c")

    def test_timeout_cancels(self) -> None:
        async def run() -> None:
            await asyncio.wait_for(run_command([PY, "-c", "import time; time.sleep(30)"]), 0.5)

        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(run())

    def test_timeout_kills_and_reaps_child(self) -> None:
        async def hang() -> tuple[bytes, bytes]:
            await asyncio.sleep(30)
            return b"", b""

        proc = MagicMock(returncode=None)
        proc.communicate = AsyncMock(side_effect=hang)
        proc.wait = AsyncMock(return_value=-9)

        async def run() -> None:
            await asyncio.wait_for(run_command(["sleep", "30"]), 0.05)

        with patch("sysmotd.commands.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(asyncio.TimeoutError):
                asyncio.run(run())

        proc.kill.assert_called_once_with()
        proc.wait.assert_awaited_once()

    def test_child_gone_before_kill_still_reaped(self) -> None:
        proc = MagicMock(returncode=None)
        proc.communicate = AsyncMock(side_effect=asyncio.CancelledError)
        proc.kill.side_effect = ProcessLookupError
        proc.wait = AsyncMock(return_value=0)

        with patch("sysmotd.commands.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(asyncio.CancelledError):
                asyncio.run(run_command(["true"]))

        proc.wait.assert_awaited_once()


# ── Fortunes / quote ───────────────────────────────────────────────────────


FORTUNES = "First saying.\n%\nSecond saying,\nover two lines.\n%\n\n%\nThird.\n"


class TestFortunes:
    def test_entries_split_on_percent_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "fortunes"
        path.write_text(FORTUNES)
        assert read_fortunes(path) == [
            "First saying.",
            "Second saying,\nover two lines.",
            "Third.",
        ]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(BuildError, match="does not exist"):
            read_fortunes(tmp_path / "nope")

    def test_directory(self, tmp_path: Path) -> None:
        with pytest.raises(BuildError, match="is a directory"):
            read_fortunes(tmp_path)

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "fortunes"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(BuildError, match="not valid UTF-8"):
            read_fortunes(path)

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "fortunes"
        path.write_text("%\n%\n")
        with pytest.raises(BuildError, match="no fortunes"):
            choose_fortune(path, random.Random(0))

    def test_quote_builder(self, tmp_path: Path) -> None:
        path = tmp_path / "fortunes"
        path.write_text(FORTUNES)
        info = asyncio.run(QuoteInfoBuilder(path, rng=random.Random(1)).build())
        assert info.text in read_fortunes(path)


# ── Heading ────────────────────────────────────────────────────────────────


FIGURE = " _   _\n| | | |\n|_| |_|\n"


class TestHeadingInfoBuilder:
    @patch("sysmotd.commands.run_command", new_callable=AsyncMock, return_value=FIGURE)
    def test_fixed_text(self, mock_run: AsyncMock) -> None:
        builder = HeadingInfoBuilder(["slant"], text="hi", width=60, rng=random.Random(0))
        info = asyncio.run(builder.build())

        mock_run.assert_awaited_once_with(["figlet", "-w", "60", "-f", "slant", "hi"])
        assert info.text == "hi"
        assert info.font == "slant"
        assert info.figure == FIGURE.rstrip("\n")
        assert 0 <= info.seed <= 256

    @patch("sysmotd.commands.run_command", new_callable=AsyncMock, return_value=FIGURE)
    def test_text_from_fortune_file(self, mock_run: AsyncMock, tmp_path: Path) -> None:
        path = tmp_path / "words"
        path.write_text("hello\n%\nhello\n")
        builder = HeadingInfoBuilder(["standard"], fortune_file=path, rng=random.Random(0))
        assert asyncio.run(builder.build()).text == "hello"

    @patch("sysmotd.commands.socket.gethostname", return_value="box.example.com")
    @patch("sysmotd.commands.run_command", new_callable=AsyncMock, return_value=FIGURE)
    def test_defaults_to_short_hostname(self, mock_run: AsyncMock, mock_host: object) -> None:
        info = asyncio.run(HeadingInfoBuilder(["standard"]).build())
        assert info.text == "box"

    @patch("sysmotd.commands.run_command", new_callable=AsyncMock)
    def test_figlet_missing(self, mock_run: AsyncMock) -> None:
        mock_run.side_effect = CommandError(["figlet"], "could not be started: No such file")
        with pytest.raises(BuildError):
            asyncio.run(HeadingInfoBuilder(["standard"], text="x").build())

    def test_needs_a_font(self) -> None:
        with pytest.raises(ValueError):
            HeadingInfoBuilder([])


# ── Updates ────────────────────────────────────────────────────────────────


SOFTWAREUPDATE_OUTPUT = """\
Software Update Tool

Finding available software
Software Update found the following new or updated software:
* Label: macOS Sonoma 14.2.1-23C71
\tTitle: macOS Sonoma 14.2.1, Version: 14.2.1, Size: 1300000K, Recommended: YES, Action: restart,
* Label: Safari17.2.1VenturaAuto-17.2.1
\tTitle: Safari, Version: 17.2.1, Size: 160000K, Recommended: YES,
"""


class TestParseUpdateList:
    def test_marked_lines(self) -> None:
        assert parse_update_list(SOFTWAREUPDATE_OUTPUT) == (
            "macOS Sonoma 14.2.1-23C71",
            "Safari17.2.1VenturaAuto-17.2.1",
        )

    def test_sentinel_means_none(self) -> None:
        out = "Software Update Tool\n\nFinding available software\nNo new software available.\n"
        assert parse_update_list(out) == ()

    def test_no_marked_lines(self) -> None:
        assert parse_update_list("nothing to see\n") == ()


class TestVersions:
    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            ("14.2.1", (14, 2, 1)),
            ("14.2", (14, 2, 0)),
            ("14", (14, 0, 0)),
            ("6.1.0-13-amd64", (6, 1, 0)),
            ("", (0, 0, 0)),
        ],
    )
    def test_version_key(self, version: str, expected: tuple[int, int, int]) -> None:
        assert version_key(version) == expected

    def test_newer_candidates(self) -> None:
        candidates = [
            {"name": "macOS Sonoma", "version": "14.3"},
            {"name": "macOS Sonoma", "version": "14.2.1"},
            {"name": "macOS Ventura", "version": "13.6.4"},
            {"name": "no version"},
            "garbage",
        ]
        assert newer_candidates(candidates, "14.2.1") == ("macOS Sonoma 14.3",)  # type: ignore[arg-type]


class TestUpdatesInfoBuilder:
    @patch("sysmotd.commands.run_command", new_callable=AsyncMock, return_value=SOFTWAREUPDATE_OUTPUT)
    def test_command_source(self, mock_run: AsyncMock) -> None:
        info = asyncio.run(UpdatesInfoBuilder().build())
        mock_run.assert_awaited_once_with(["softwareupdate", "--list"])
        assert len(info.updates) == 2

    def test_metadata_source(self, tmp_path: Path) -> None:
        path = tmp_path / "updates.json"
        path.write_text(json.dumps({"candidates": [{"name": "Ubuntu", "version": "24.04"}]}))
        builder = UpdatesInfoBuilder(source="metadata", metadata_path=path, os_version=lambda: "22.04")
        assert asyncio.run(builder.build()).updates == ("Ubuntu 24.04",)

    def test_metadata_up_to_date(self, tmp_path: Path) -> None:
        path = tmp_path / "updates.json"
        path.write_text(json.dumps({"candidates": [{"name": "Ubuntu", "version": "22.04"}]}))
        builder = UpdatesInfoBuilder(source="metadata", metadata_path=path, os_version=lambda: "22.04")
        assert asyncio.run(builder.build()).updates == ()

    def test_metadata_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "updates.json"
        path.write_text("{not json")
        builder = UpdatesInfoBuilder(source="metadata", metadata_path=path)
        with pytest.raises(BuildError, match="invalid update metadata"):
            asyncio.run(builder.build())

    def test_metadata_candidates_not_a_list(self, tmp_path: Path) -> None:
        path = tmp_path / "updates.json"
        path.write_text(json.dumps({"candidates": "14.3"}))
        builder = UpdatesInfoBuilder(source="metadata", metadata_path=path)
        with pytest.raises(BuildError, match="not a list"):
            asyncio.run(builder.build())

    def test_metadata_missing(self, tmp_path: Path) -> None:
        builder = UpdatesInfoBuilder(source="metadata", metadata_path=tmp_path / "none.json")
        with pytest.raises(BuildError, match="cannot read"):
            asyncio.run(builder.build())

    def test_bad_source(self) -> None:
        with pytest.raises(ValueError):
            UpdatesInfoBuilder(source="apt")

    def test_metadata_needs_path(self) -> None:
        with pytest.raises(ValueError):
            UpdatesInfoBuilder(source="metadata")


# ── Command ────────────────────────────────────────────────────────────────


class TestCommandInfoBuilder:
    def test_output_trailing_newlines_stripped(self) -> None:
        info = asyncio.run(CommandInfoBuilder([PY, "-c", "print('a'); print('b')"]).build())
        assert info.output == "a\nb"

    def test_empty_argv(self) -> None:
        with pytest.raises(ValueError):
            CommandInfoBuilder([])
