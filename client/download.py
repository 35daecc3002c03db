"""
Download throughput test.

Each transfer is a ranged GET of ``server.range_url`` (see
``Server.set_chunk_size``) whose body is read to the end and discarded.
An error status fails the transfer and none of its body is counted.
"""
from __future__ import annotations

import aiohttp

from .api import Server
from .constants import COMMON_HEADERS, READ_CHUNK_SIZE
from .errors import InvalidServerURLError
from .throughput import Direction, ThroughputTester


class DownloadTester(ThroughputTester):
    """Parallel ranged-GET download tester."""

    direction = Direction.DOWNLOAD
    headers = {**COMMON_HEADERS, "Accept-Encoding": "identity"}

    def target_url(self, server: Server) -> str:
        if not server.range_url:
            raise InvalidServerURLError(
                f"server {server.name} has no range URL; set a chunk size first"
            )
        return server.range_url

    async def _transfer(self, session: aiohttp.ClientSession, url: str) -> int:
        received = 0
        async with session.get(url) as resp:
            resp.raise_for_status()
            async for chunk in resp.content.iter_chunked(READ_CHUNK_SIZE):
                received += len(chunk)
        return received
