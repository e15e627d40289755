"""Exception types shared by builders, renderers and the pipeline."""

from __future__ import annotations


class SysmotdError(Exception):
    """Base class for sysmotd errors."""


class BuildError(SysmotdError):
    """A segment could not acquire its data."""


class CommandError(BuildError):
    """An external command could not be spawned, failed, or printed garbage."""

    def __init__(self, argv: list[str], message: str) -> None:
        self.argv = list(argv)
        super().__init__(f"`{' '.join(argv)}` {message}")

    @classmethod
    def spawn_failed(cls, argv: list[str], error: OSError) -> CommandError:
        return cls(argv, f"could not be started: {error.strerror or error}")

    @classmethod
    def failed(cls, argv: list[str], returncode: int) -> CommandError:
        return cls(argv, f"exited with status {returncode}")

    @classmethod
    def undecodable(cls, argv: list[str], error: UnicodeDecodeError) -> CommandError:
        return cls(argv, f"produced output that is not valid UTF-8 ({error.reason})")


class RenderError(SysmotdError):
    """Painting went outside the region it was given."""


class SegmentFailedError(SysmotdError):
    """A segment failed and the run is not allowed to degrade."""

    def __init__(self, segment: str, reason: str) -> None:
        self.segment = segment
        self.reason = reason
        super().__init__(f"{segment}: {reason}")
