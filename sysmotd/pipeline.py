"""Segment pipeline: collect everything, lay it out, paint it once.

A run moves through IDLE → COLLECTING → COLLECTED → LAYING_OUT → PAINTING →
DONE. Builders run concurrently; nothing is painted until every builder has
finished, and no region is assigned until every height is known.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sysmotd.builders import InfoBuilder
from sysmotd.errors import BuildError, RenderError, SegmentFailedError
from sysmotd.renderers import SegmentRenderer, UnavailableRenderer
from sysmotd.terminal import Canvas, Region, Terminal, split_vertical

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """One dashboard row: where its data comes from and how it's drawn."""

    name: str
    label: str
    builder: InfoBuilder[Any]
    renderer: Callable[[Any], SegmentRenderer]


@dataclass(frozen=True)
class SegmentFailure:
    segment: str
    reason: str


Outcome = Any  # an Info snapshot or a SegmentFailure


class Phase(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    COLLECTED = "collected"
    LAYING_OUT = "laying-out"
    PAINTING = "painting"
    DONE = "done"


@dataclass
class RunResult:
    """What a run painted: per-segment heights and the failed segments."""

    heights: list[int] = field(default_factory=list)
    failures: list[SegmentFailure] = field(default_factory=list)

    @property
    def total_height(self) -> int:
        return sum(self.heights)


class Pipeline:
    """Drives one dashboard run.

    Args:
        segments: Segments in display order.
        terminal: Paint surface for the frame.
        timeout: Seconds each builder may take before it counts as failed.
        strict: Abort on the first failed segment instead of painting a
            placeholder for it.
    """

    def __init__(
        self,
        segments: Sequence[Segment],
        terminal: Terminal,
        timeout: float = 5.0,
        strict: bool = False,
    ) -> None:
        self.segments = list(segments)
        self.terminal = terminal
        self.timeout = timeout
        self.strict = strict
        self.phase = Phase.IDLE

    def _enter(self, phase: Phase) -> None:
        log.debug("pipeline %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    # ── Collection ────────────────────────────────────────────────────────

    async def _build(self, segment: Segment) -> Outcome:
        started = time.monotonic()
        try:
            return await asyncio.wait_for(segment.builder.build(), self.timeout)
        except asyncio.TimeoutError:
            reason = f"timed out after {self.timeout:g}s"
        except BuildError as e:
            reason = str(e) or type(e).__name__
        finally:
            log.debug("%s built in %.3fs", segment.name, time.monotonic() - started)
        log.warning("segment %s failed: %s", segment.name, reason)
        return SegmentFailure(segment.name, reason)

    async def collect(self) -> list[Outcome]:
        """Run every builder concurrently; results keep submission order."""
        self._enter(Phase.COLLECTING)
        outcomes = await asyncio.gather(*(self._build(s) for s in self.segments))
        self._enter(Phase.COLLECTED)
        return list(outcomes)

    # ── Layout & paint ────────────────────────────────────────────────────

    def renderers(self, outcomes: Sequence[Outcome]) -> list[SegmentRenderer]:
        """Turn outcomes into renderers, in segment order."""
        if self.phase is not Phase.COLLECTED:
            raise RuntimeError(f"cannot lay out while {self.phase.value}")
        self._enter(Phase.LAYING_OUT)
        renderers: list[SegmentRenderer] = []
        for segment, outcome in zip(self.segments, outcomes, strict=True):
            if isinstance(outcome, SegmentFailure):
                if self.strict:
                    raise SegmentFailedError(outcome.segment, outcome.reason)
                renderers.append(UnavailableRenderer(segment.label, outcome.reason))
            else:
                renderers.append(segment.renderer(outcome))
        return renderers

    def paint(self, renderers: Sequence[SegmentRenderer]) -> list[int]:
        """Size the viewport to fit every renderer and draw them in one frame."""
        heights = [r.height() for r in renderers]
        total = sum(heights)

        def draw(canvas: Canvas) -> None:
            regions = split_vertical(canvas.area, heights)
            if len(regions) != len(renderers):
                raise RenderError(
                    f"{len(regions)} regions for {len(renderers)} segments"
                )
            for segment, renderer, rect in zip(self.segments, renderers, regions):
                try:
                    renderer.render(Region(canvas, rect))
                except RenderError as e:
                    raise RenderError(f"{segment.name}: {e}") from e

        self._enter(Phase.PAINTING)
        self.terminal.draw(total, draw)
        self._enter(Phase.DONE)
        return heights

    def _collect_blocking(self) -> list[Outcome]:
        """Run ``collect()`` on a private loop.

        Its executor is released without joining worker threads, so a builder
        still stuck after its timeout cannot delay the frame.
        """
        executor = ThreadPoolExecutor(thread_name_prefix="sysmotd-build")
        loop = asyncio.new_event_loop()
        loop.set_default_executor(executor)
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(self.collect())
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                asyncio.set_event_loop(None)
                loop.close()

    def run(self) -> RunResult:
        """Collect, lay out and paint one frame.

        Raises:
            SegmentFailedError: A segment failed and ``strict`` is set.
            RenderError: A renderer painted outside its region.
        """
        outcomes = self._collect_blocking()
        failures = [o for o in outcomes if isinstance(o, SegmentFailure)]
        heights = self.paint(self.renderers(outcomes))
        return RunResult(heights=heights, failures=failures)
