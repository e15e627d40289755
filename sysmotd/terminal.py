"""Inline terminal paint surface.

A frame is painted into an in-memory ``Canvas`` of styled cells and then
written to the terminal with one write call, so the dashboard appears in a
single piece below the prompt instead of streaming segment by segment.
"""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO

from sysmotd.errors import RenderError

# ── ANSI helpers ────────────────────────────────────────────────────────────

ESC = "\033["
RESET = "\033[0m"

_FG_CODES: dict[str, str] = {
    "red": "91",
    "green": "92",
    "yellow": "93",
    "blue": "94",
    "magenta": "95",
    "cyan": "96",
    "white": "97",
}

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Style:
    fg: str | RGB | None = None
    bold: bool = False
    dim: bool = False

    def sgr(self) -> str:
        """SGR escape sequence selecting this style ('' for the plain style)."""
        codes: list[str] = []
        if self.bold:
            codes.append("1")
        if self.dim:
            codes.append("2")
        if isinstance(self.fg, tuple):
            r, g, b = self.fg
            codes.append(f"38;2;{r};{g};{b}")
        elif self.fg is not None:
            codes.append(_FG_CODES[self.fg])
        if not codes:
            return ""
        return f"{ESC}{';'.join(codes)}m"


PLAIN = Style()
LABEL = Style(fg="blue", bold=True)
DIM = Style(dim=True)
GREEN = Style(fg="green")
YELLOW = Style(fg="yellow")
RED = Style(fg="red")


# ── Geometry ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int


def split_vertical(area: Rect, heights: Sequence[int]) -> list[Rect]:
    """Cut ``area`` into contiguous full-width rows of the given heights.

    The heights must add up to the area height exactly.
    """
    if any(h < 0 for h in heights):
        raise RenderError(f"negative segment height in {list(heights)}")
    if sum(heights) != area.height:
        raise RenderError(
            f"segment heights add up to {sum(heights)} rows "
            f"but the viewport has {area.height}"
        )
    rects: list[Rect] = []
    y = area.y
    for h in heights:
        rects.append(Rect(area.x, y, area.width, h))
        y += h
    return rects


# ── Canvas ──────────────────────────────────────────────────────────────────

Cell = tuple[str, Style]


class Canvas:
    """Fixed-size grid of styled cells."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._rows: list[list[Cell]] = [
            [(" ", PLAIN) for _ in range(width)] for _ in range(height)
        ]

    @property
    def area(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def put(self, x: int, y: int, text: str, style: Style = PLAIN) -> None:
        """Write text at an absolute position, clipped at the right edge."""
        if not 0 <= y < self.height:
            raise RenderError(f"row {y} is outside the {self.height}-row canvas")
        row = self._rows[y]
        for i, ch in enumerate(text):
            col = x + i
            if col >= self.width:
                break
            if col >= 0:
                row[col] = (ch, style)

    def lines(self) -> list[str]:
        """Canvas rows as plain text with trailing blanks removed."""
        return ["".join(ch for ch, _ in row).rstrip() for row in self._rows]

    def to_ansi(self, color: bool = True) -> str:
        if not color:
            return "".join(line + "\n" for line in self.lines())

        out: list[str] = []
        for row in self._rows:
            # Trailing unstyled blanks are never emitted
            end = len(row)
            while end and row[end - 1] == (" ", PLAIN):
                end -= 1
            current = PLAIN
            for ch, style in row[:end]:
                if style != current:
                    if current != PLAIN:
                        out.append(RESET)
                    out.append(style.sgr())
                    current = style
                out.append(ch)
            if current != PLAIN:
                out.append(RESET)
            out.append("\n")
        return "".join(out)


class Region:
    """A rectangle of the canvas handed to exactly one renderer.

    Rows are relative to the region. Text running past the right edge is
    clipped; writing to a row outside the region raises ``RenderError``.
    """

    def __init__(self, canvas: Canvas, rect: Rect) -> None:
        self.canvas = canvas
        self.rect = rect

    @property
    def width(self) -> int:
        return self.rect.width

    @property
    def height(self) -> int:
        return self.rect.height

    def write(self, row: int, col: int, text: str, style: Style = PLAIN) -> int:
        """Write ``text`` at (row, col) and return the column after it."""
        if not 0 <= row < self.rect.height:
            raise RenderError(
                f"row {row} is outside a region of height {self.rect.height}"
            )
        room = max(0, self.rect.width - col)
        self.canvas.put(self.rect.x + col, self.rect.y + row, text[:room], style)
        return col + len(text)

    def write_spans(
        self, row: int, col: int, spans: Sequence[tuple[str, Style]]
    ) -> int:
        for text, style in spans:
            col = self.write(row, col, text, style)
        return col

    def columns(self, left_width: int) -> tuple[Region, Region]:
        """Split into a fixed-width left column and the rest of the row."""
        left_width = min(left_width, self.rect.width)
        left = Rect(self.rect.x, self.rect.y, left_width, self.rect.height)
        right = Rect(
            self.rect.x + left_width,
            self.rect.y,
            self.rect.width - left_width,
            self.rect.height,
        )
        return Region(self.canvas, left), Region(self.canvas, right)


# ── Terminal ────────────────────────────────────────────────────────────────


def _terminal_width() -> int:
    return shutil.get_terminal_size((80, 24)).columns


def color_enabled(mode: str, stream: TextIO) -> bool:
    """Resolve the ``color`` setting (auto/always/never) for a stream."""
    if mode == "always":
        return True
    if mode == "never":
        return False
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Terminal:
    """Inline viewport below the cursor, drawn once per run."""

    def __init__(
        self,
        stream: TextIO | None = None,
        width: int | None = None,
        color: bool = True,
    ) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.width = width if width is not None else _terminal_width()
        self.color = color

    def draw(self, height: int, paint: Callable[[Canvas], None]) -> None:
        """Allocate a ``height``-row canvas, let ``paint`` fill it, flush it."""
        canvas = Canvas(self.width, height)
        paint(canvas)
        self.stream.write(canvas.to_ansi(self.color))
        self.stream.flush()
