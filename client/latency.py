"""
Round-trip time probing.

Two interchangeable strategies share the ``Prober`` contract
``await probe(server, count) -> average RTT in milliseconds``:

* ``ICMPProber`` sends ICMP echo requests with scapy.  Raw sockets need
  elevated privileges; without them the probe fails with ``ProbeError``.
* ``HTTPProber`` times sequential GET requests against the server URL.

Neither strategy retries: a single failed sample fails the whole probe.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import List, Optional

import aiohttp
from scapy.all import ICMP, IP, conf, sr

from .api import Server, resolve_ipv4
from .constants import COMMON_HEADERS, HTTP_PROBE_TIMEOUT, ICMP_REPLY_TIMEOUT
from .errors import ProbeError
from .stats import calculate_mean

conf.verb = 0

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class LatencyResult:
    """Outcome of the per-server latency test."""

    server: Server
    rtt_ms: float = 0.0
    samples: int = 0
    method: str = ""

    def to_dict(self) -> dict:
        return {
            "server": self.server.name,
            "rtt_ms": round(self.rtt_ms, 3),
            "samples": self.samples,
            "method": self.method,
        }


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class Prober:
    """Measures the average round-trip time to a server."""

    method = ""

    async def probe(self, server: Server, count: int) -> float:
        raise NotImplementedError

    async def measure(self, server: Server, count: int) -> LatencyResult:
        rtt = await self.probe(server, count)
        return LatencyResult(server=server, rtt_ms=rtt, samples=count, method=self.method)


class ICMPProber(Prober):
    """ICMP echo round trips, averaged over the replies that came back."""

    method = "icmp"

    def __init__(self, timeout: float = ICMP_REPLY_TIMEOUT) -> None:
        self.timeout = timeout
        self._ident = os.getpid() & 0xFFFF

    async def probe(self, server: Server, count: int) -> float:
        try:
            address = await resolve_ipv4(server.hostname)
        except OSError as exc:
            raise ProbeError(f"error resolving host for {server.name}: {exc}") from exc

        loop = asyncio.get_running_loop()
        rtts: List[float] = []

        for seq in range(count):
            try:
                rtt = await loop.run_in_executor(None, self._echo, address, seq)
            except PermissionError as exc:
                raise ProbeError(
                    f"error creating pinger for {server.name}: raw sockets not permitted ({exc})"
                ) from exc
            except OSError as exc:
                raise ProbeError(f"error probing server {server.name}: {exc}") from exc

            if rtt is None:
                logger.debug("echo %d to %s lost", seq, address)
                continue
            rtts.append(rtt)

        if not rtts:
            raise ProbeError(f"error probing server {server.name}: all {count} echo requests lost")

        return calculate_mean(rtts)

    def _echo(self, address: str, seq: int) -> Optional[float]:
        """Blocking single echo; returns the RTT in ms or None when lost."""
        packet = IP(dst=address) / ICMP(id=self._ident, seq=seq)
        answered, _ = sr(packet, timeout=self.timeout, verbose=0)
        if not answered:
            return None
        sent, received = answered[0]
        return (float(received.time) - float(sent.sent_time)) * 1000


class HTTPProber(Prober):
    """Sequential GET round trips with a per-request timeout."""

    method = "http"

    def __init__(self, timeout: float = HTTP_PROBE_TIMEOUT) -> None:
        self.timeout = timeout

    async def probe(self, server: Server, count: int) -> float:
        total_ms = 0.0
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(headers=COMMON_HEADERS, timeout=timeout) as session:
            for _ in range(count):
                start = time.perf_counter()
                try:
                    async with session.get(server.url) as resp:
                        await resp.read()
                        status = resp.status
                except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    raise ProbeError(f"error retrieving response for {server.url}: {exc}") from exc

                if not 200 <= status < 300:
                    raise ProbeError(f"unexpected status code {status} for {server.url}")

                total_ms += (time.perf_counter() - start) * 1000

        return total_ms / count


def get_prober(use_icmp: bool = True) -> Prober:
    """ICMP when *use_icmp*, HTTP otherwise."""
    if use_icmp:
        return ICMPProber()
    return HTTPProber()
