"""Docker segment builder.

Talks to the Docker Engine API over its local Unix socket. A daemon that
can't be reached is an ordinary, displayable outcome: the builder returns a
``DockerInfo`` marked unavailable instead of failing.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from sysmotd.info import ContainerEntry, ContainerState, DockerInfo

log = logging.getLogger(__name__)

DEFAULT_SOCKET = "/var/run/docker.sock"

# Docker reports nanoseconds; datetime only keeps microseconds
_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by the Engine API."""
    text = value.strip().replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DockerClient:
    """Minimal async client for the two Engine API calls the segment needs."""

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if transport is None:
            transport = httpx.AsyncHTTPTransport(uds=socket_path)
        self._client = httpx.AsyncClient(
            transport=transport,
            base_url="http://docker",
            timeout=timeout,
        )

    async def __aenter__(self) -> DockerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_containers(self) -> list[dict[str, Any]]:
        """All containers, stopped ones included."""
        response = await self._client.get("/containers/json", params={"all": "1"})
        response.raise_for_status()
        return response.json()

    async def inspect_container(self, container_id: str) -> dict[str, Any]:
        response = await self._client.get(f"/containers/{container_id}/json")
        response.raise_for_status()
        return response.json()


def container_entry(details: dict[str, Any], now: datetime) -> ContainerEntry:
    """Build a row from an inspect payload.

    Raises:
        KeyError, ValueError: The payload is missing state information.
    """
    state_info: dict[str, Any] = details["State"]
    state = ContainerState(state_info.get("Status") or "")
    name = str(details.get("Name", "")).lstrip("/")

    exit_code: int | None = None
    if state in (ContainerState.EXITED, ContainerState.DEAD):
        since = parse_timestamp(state_info["FinishedAt"])
        if state is ContainerState.EXITED:
            exit_code = int(state_info.get("ExitCode") or 0)
    else:
        since = parse_timestamp(state_info["StartedAt"])

    elapsed = max(0.0, (now - since).total_seconds())
    return ContainerEntry(
        name=name,
        state=state,
        elapsed_seconds=elapsed,
        exit_code=exit_code,
    )


class DockerInfoBuilder:
    """Container listing with per-container state.

    Args:
        socket_path: Docker control socket.
        timeout: Per-request timeout in seconds.
        max_concurrent_inspects: Upper bound on inspect calls in flight.
        client_factory: Builds the API client; tests pass one wired to a
            mock transport.
        clock: Current time, timezone aware.
    """

    def __init__(
        self,
        socket_path: str = DEFAULT_SOCKET,
        timeout: float = 5.0,
        max_concurrent_inspects: int = 4,
        client_factory: Callable[[], DockerClient] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_concurrent_inspects < 1:
            raise ValueError("max_concurrent_inspects must be at least 1")
        self.socket_path = socket_path
        self.timeout = timeout
        self.max_concurrent_inspects = max_concurrent_inspects
        self.client_factory = client_factory or (
            lambda: DockerClient(self.socket_path, timeout=self.timeout)
        )
        self.clock = clock

    async def build(self) -> DockerInfo:
        async with self.client_factory() as client:
            try:
                summaries = await client.list_containers()
            except httpx.HTTPStatusError as e:
                return DockerInfo(
                    unavailable_reason=f"Docker API returned {e.response.status_code}"
                )
            except httpx.HTTPError as e:
                log.debug("docker unreachable at %s: %r", self.socket_path, e)
                return DockerInfo(unavailable_reason=_describe(e, self.socket_path))
            except ValueError:
                summaries = None
            if not isinstance(summaries, list):
                return DockerInfo(unavailable_reason="Docker API sent an invalid response")

            now = self.clock()
            limit = asyncio.Semaphore(self.max_concurrent_inspects)
            results = await asyncio.gather(*(
                self._inspect(client, limit, summary, now) for summary in summaries
            ))
        return DockerInfo(containers=tuple(r for r in results if r is not None))

    async def _inspect(
        self,
        client: DockerClient,
        limit: asyncio.Semaphore,
        summary: dict[str, Any],
        now: datetime,
    ) -> ContainerEntry | None:
        container_id = summary.get("Id") if isinstance(summary, dict) else None
        if not container_id:
            return None
        async with limit:
            try:
                details = await client.inspect_container(container_id)
                return container_entry(details, now)
            except (httpx.HTTPError, KeyError, ValueError, TypeError) as e:
                # Best effort: one broken container doesn't hide the others
                log.debug("dropping container %s: %r", container_id[:12], e)
                return None


def _describe(error: httpx.HTTPError, socket_path: str) -> str:
    if isinstance(error, httpx.ConnectError):
        return f"cannot connect to {socket_path}"
    if isinstance(error, httpx.TimeoutException):
        return "Docker daemon did not respond"
    return str(error) or type(error).__name__
