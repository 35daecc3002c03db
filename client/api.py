"""
fast.com API client.

Handles token discovery and target-list fetching.  All HTTP work goes
through a single ``aiohttp.ClientSession`` managed via async-context-manager
protocol (``async with FastAPI() as api: ...``).
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
import socket
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import SplitResult, urlsplit, urlunsplit

import aiohttp

from .constants import COMMON_HEADERS, FAST_API_URL, FAST_BASE_URL
from .errors import (
    InvalidServerURLError,
    ScriptNotFoundError,
    TokenError,
    TokenNotFoundError,
)

logger = logging.getLogger(__name__)

_SCRIPT_SRC_RE = re.compile(r"<script\b[^>]*?\bsrc\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_TOKEN_RE = re.compile(r'token:\s*"([^"]+)"')


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------

def parse_server_url(url: str) -> SplitResult:
    """Split *url*, insisting on a scheme and a host."""
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise InvalidServerURLError(f"error parsing url for {url}: {exc}") from exc
    if not parts.scheme or not parts.netloc:
        raise InvalidServerURLError(f"error parsing url for {url}: missing scheme or host")
    return parts


async def resolve_ipv4(hostname: str) -> str:
    """Return the first IPv4 address *hostname* resolves to."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, family=socket.AF_INET, type=socket.SOCK_STREAM)
    return infos[0][4][0]


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass
class Server:
    """A single fast.com test target."""

    name: str
    url: str
    range_url: str = ""
    city: str = ""
    country: str = ""

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict) -> Server:
        location = data.get("location") or {}
        return cls(
            name=data.get("name", ""),
            url=data.get("url", ""),
            range_url=data.get("rburl", ""),
            city=location.get("city", ""),
            country=location.get("country", ""),
        )

    # -- Derived values -----------------------------------------------------

    @property
    def hostname(self) -> str:
        return urlsplit(self.url).hostname or ""

    @property
    def location(self) -> str:
        return ", ".join(p for p in (self.city, self.country) if p)

    def set_chunk_size(self, size: int) -> None:
        """Point ``range_url`` at ``<url path>/range/0-<size>``.

        The query string of the base URL (which carries the per-target
        signature) is preserved.
        """
        parts = parse_server_url(self.url)
        path = f"{parts.path.rstrip('/')}/range/0-{size}"
        self.range_url = urlunsplit(parts._replace(path=path))

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "url": self.url,
            "location": {"city": self.city, "country": self.country},
        }
        if self.range_url:
            result["rburl"] = self.range_url
        return result


@dataclass
class ClientInfo:
    """The client as seen by the fast.com API."""

    ip: str = ""
    asn: str = ""
    isp: str = ""
    city: str = ""
    country: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> ClientInfo:
        location = data.get("location") or {}
        return cls(
            ip=data.get("ip", ""),
            asn=str(data.get("asn", "")),
            isp=data.get("isp", ""),
            city=location.get("city", ""),
            country=location.get("country", ""),
        )

    @property
    def location(self) -> str:
        return ", ".join(p for p in (self.city, self.country) if p)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "asn": self.asn,
            "isp": self.isp,
            "location": {"city": self.city, "country": self.country},
        }


# ---------------------------------------------------------------------------
# Scraping helpers
# ---------------------------------------------------------------------------

def extract_script_name(html: str) -> str:
    """Return the ``src`` of the first ``<script>`` tag in *html*."""
    m = _SCRIPT_SRC_RE.search(html)
    if not m:
        raise ScriptNotFoundError("no src attribute found within the script tag")
    return m.group(1)


def extract_token(script: str) -> str:
    """Pull the API token out of the fast.com application script."""
    m = _TOKEN_RE.search(script)
    if not m:
        raise TokenNotFoundError("token not found in provided string")
    return m.group(1)


def parse_targets(data: dict) -> Tuple[List[Server], ClientInfo]:
    """Decode the ``targets`` / ``client`` document of the API."""
    servers = [Server.from_dict(t) for t in data.get("targets") or []]
    client = ClientInfo.from_dict(data.get("client") or {})
    return servers, client


def generate_payload(size: int) -> bytes:
    """Random upload body of *size* bytes."""
    return os.urandom(size)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

class FastAPI:
    """Async context-manager wrapping the fast.com REST API."""

    def __init__(self) -> None:
        self._session: Optional[aiohttp.ClientSession] = None
        self.servers: List[Server] = []
        self.client_info: Optional[ClientInfo] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> FastAPI:
        self._session = aiohttp.ClientSession(headers=COMMON_HEADERS)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._session:
            await self._session.close()
            self._session = None

    # -- Internal helpers ---------------------------------------------------

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "FastAPI must be used as an async context manager "
                "(async with FastAPI() as api: ...)"
            )
        return self._session

    # -- Public methods -----------------------------------------------------

    async def get_token(self) -> str:
        """Scrape the API token out of the fast.com front-end bundle."""
        session = self._ensure_session()

        async with session.get(FAST_BASE_URL) as resp:
            resp.raise_for_status()
            html = await resp.text()

        script = extract_script_name(html)
        logger.debug("fast.com application script: %s", script)

        async with session.get(f"{FAST_BASE_URL}{script}") as resp:
            resp.raise_for_status()
            body = await resp.text()

        return extract_token(body)

    async def fetch_targets(
        self,
        token: str = "",
        url_count: int = 5,
    ) -> Tuple[List[Server], ClientInfo]:
        """Return the candidate servers and the client description.

        When *token* is empty it is scraped first.
        """
        session = self._ensure_session()

        if not token:
            token = await self.get_token()

        params = {
            "https": "true",
            "token": token,
            "urlCount": str(url_count),
        }

        async with session.get(FAST_API_URL, params=params) as resp:
            if resp.status == 403:
                raise TokenError("invalid token passed as a parameter")
            resp.raise_for_status()
            data = await resp.json(content_type=None)

        self.servers, self.client_info = parse_targets(data)
        logger.debug("received %d candidate servers", len(self.servers))
        return self.servers, self.client_info
