"""
Deadline-bounded concurrent throughput testing.

``ThroughputTester`` keeps ``connections`` workers busy until the deadline.
Each worker runs one complete request/response cycle at a time, adds the
bytes it moved to a shared counter, and admits a fresh transfer unless the
stop event has been set.  The download and upload modules only supply the
transfer itself.

At the deadline the counter is read immediately.  Transfers still in flight
are cancelled and never counted, so the figure slightly under-reports the
bytes that were on the wire.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

import aiohttp

from .api import Server, parse_server_url
from .constants import (
    COMMON_HEADERS,
    DEFAULT_CONNECTIONS,
    DEFAULT_DURATION,
    ERROR_BACKOFF,
    MAX_CONNECTIONS,
    MIN_CONNECTIONS,
    SAMPLE_INTERVAL,
)
from .stats import bits_per_second, calculate_mbps

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class ThroughputResult:
    """Throughput test result."""

    direction: Direction
    speed_bps: float = 0.0
    bytes_total: int = 0
    duration_s: float = 0.0
    connections: int = 0
    transfers: int = 0
    errors: int = 0
    samples: List[float] = field(default_factory=list)

    @property
    def speed_mbps(self) -> float:
        return self.speed_bps / 1_000_000

    def calculate(self) -> None:
        """Derive speed from total bytes and the configured duration."""
        if self.duration_s > 0:
            self.speed_bps = bits_per_second(self.bytes_total, self.duration_s)
        else:
            self.speed_bps = 0.0

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "speed_bps": round(self.speed_bps, 2),
            "speed_mbps": round(self.speed_mbps, 2),
            "bytes_total": self.bytes_total,
            "duration_s": self.duration_s,
            "connections": self.connections,
            "transfers": self.transfers,
            "errors": self.errors,
            "samples": [round(s, 2) for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class ThroughputTester:
    """
    Base class for the download and upload testers.

    Subclasses set ``direction`` and implement ``target_url`` and
    ``_transfer``.  ``on_progress`` is called every ``SAMPLE_INTERVAL``
    seconds with ``(fraction_done, current_bps)``.
    """

    direction: Direction
    headers: Dict[str, str] = COMMON_HEADERS

    def __init__(self, duration_seconds: float = DEFAULT_DURATION) -> None:
        self.duration_seconds = duration_seconds
        self.on_progress: Optional[Callable[[float, float], None]] = None

    # -- Hooks --------------------------------------------------------------

    def target_url(self, server: Server) -> str:
        raise NotImplementedError

    async def _transfer(self, session: aiohttp.ClientSession, url: str) -> int:
        """Run one request/response cycle and return the bytes moved."""
        raise NotImplementedError

    # -- Test ---------------------------------------------------------------

    async def test(self, server: Server, connections: int = DEFAULT_CONNECTIONS) -> ThroughputResult:
        connections = max(MIN_CONNECTIONS, min(connections, MAX_CONNECTIONS))

        url = self.target_url(server)
        parse_server_url(url)

        result = ThroughputResult(
            direction=self.direction,
            duration_s=max(self.duration_seconds, 0.0),
            connections=connections,
        )
        total_bytes = 0
        speed_samples: List[float] = []

        start_time = time.perf_counter()
        end_time = start_time + self.duration_seconds
        stop = asyncio.Event()

        # -- Worker ---------------------------------------------------------

        async def _worker(session: aiohttp.ClientSession) -> None:
            nonlocal total_bytes

            while not stop.is_set():
                try:
                    n = await self._transfer(session, url)
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                    if stop.is_set():
                        break
                    result.errors += 1
                    logger.error(
                        "%s transfer with %s failed: %s",
                        self.direction.value,
                        server.name,
                        str(exc) or type(exc).__name__,
                    )
                    await asyncio.sleep(ERROR_BACKOFF)
                    continue

                total_bytes += n
                result.transfers += 1

        # -- Sampler --------------------------------------------------------

        async def _sampler() -> None:
            prev_bytes = 0
            prev_time = start_time

            while not stop.is_set():
                try:
                    await asyncio.wait_for(stop.wait(), timeout=SAMPLE_INTERVAL)
                    break
                except asyncio.TimeoutError:
                    pass

                now = time.perf_counter()
                cur = total_bytes
                speed_samples.append(calculate_mbps(cur - prev_bytes, now - prev_time))
                prev_bytes = cur
                prev_time = now

                if self.on_progress:
                    elapsed = now - start_time
                    prog = min(elapsed / self.duration_seconds, 1.0)
                    self.on_progress(prog, bits_per_second(cur, elapsed))

        # -- Orchestration --------------------------------------------------

        connector = aiohttp.TCPConnector(limit=connections, limit_per_host=connections)
        timeout = aiohttp.ClientTimeout(total=None, connect=5, sock_read=5)

        async with aiohttp.ClientSession(
            headers=self.headers,
            connector=connector,
            timeout=timeout,
        ) as session:
            workers = [asyncio.create_task(_worker(session)) for _ in range(connections)]
            sampler = asyncio.create_task(_sampler())

            remaining = end_time - time.perf_counter()
            if remaining > 0:
                await asyncio.sleep(remaining)

            stop.set()
            result.bytes_total = total_bytes

            for t in workers:
                t.cancel()
            sampler.cancel()

            outcomes = await asyncio.gather(*workers, sampler, return_exceptions=True)

        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error(
                    "%s worker for %s stopped early: %r",
                    self.direction.value,
                    server.name,
                    outcome,
                )

        result.samples = speed_samples
        result.calculate()

        logger.debug(
            "%s: %d bytes in %.1f s over %d transfers (%d errors)",
            self.direction.value,
            result.bytes_total,
            result.duration_s,
            result.transfers,
            result.errors,
        )
        return result
