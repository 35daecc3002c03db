"""
Upload throughput test.

Each transfer POSTs the same pre-generated random payload to ``server.url``
and counts the payload length once a 2xx response has arrived.
"""
import aiohttp

from .api import Server
from .constants import COMMON_HEADERS, DEFAULT_DURATION
from .throughput import Direction, ThroughputTester


class UploadTester(ThroughputTester):
    """Parallel POST upload tester."""

    direction = Direction.UPLOAD
    headers = {**COMMON_HEADERS, "Content-Type": "application/octet-stream"}

    def __init__(self, payload: bytes, duration_seconds: float = DEFAULT_DURATION):
        super().__init__(duration_seconds=duration_seconds)
        self.payload = payload

    def target_url(self, server: Server) -> str:
        return server.url

    async def _transfer(self, session: aiohttp.ClientSession, url: str) -> int:
        async with session.post(url, data=self.payload) as resp:
            resp.raise_for_status()
            await resp.read()
        return len(self.payload)
