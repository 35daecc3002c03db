"""
Test configuration and user configuration file support.

``TestConfig`` is the immutable value threaded through every component of a
run.  It is built once by the CLI from the defaults, the user file
``~/.zoomies/config.json`` and the command-line flags (in that order of
precedence, last wins).

Supported file keys::

    count = 1                # servers to test
    concurrency = 3          # concurrent requests
    duration = 15.0
    ping_count = 3
    chunk_size = 26214400
    payload_size = 26214400
    icmp = true              # ICMP latency probing, HTTP when false
    binary = false           # binary unit prefixes
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from .constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECTIONS,
    DEFAULT_DURATION,
    DEFAULT_PAYLOAD_SIZE,
    DEFAULT_PING_COUNT,
    DEFAULT_SERVER_COUNT,
    MAX_CHUNK_SIZE,
    MAX_CONNECTIONS,
    MAX_DURATION,
    MAX_PING_COUNT,
    MAX_SERVER_COUNT,
    MIN_CHUNK_SIZE,
    MIN_CONNECTIONS,
    MIN_DURATION,
    MIN_PING_COUNT,
    MIN_SERVER_COUNT,
)
from .errors import ValidationError

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".zoomies")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Test configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TestConfig:
    """Parameters of one test invocation."""

    __test__ = False  # not a test case, despite the name

    concurrency: int = DEFAULT_CONNECTIONS
    duration: float = DEFAULT_DURATION
    payload_size: int = DEFAULT_PAYLOAD_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    ping_count: int = DEFAULT_PING_COUNT
    binary: bool = False

    def validate(self) -> None:
        """Raise ``ValidationError`` if any field is out of range."""
        if not MIN_CONNECTIONS <= self.concurrency <= MAX_CONNECTIONS:
            raise ValidationError(
                f"concurrent requests must be in the range {MIN_CONNECTIONS}-{MAX_CONNECTIONS} inclusive"
            )
        if not MIN_CHUNK_SIZE <= self.chunk_size <= MAX_CHUNK_SIZE:
            raise ValidationError(
                f"chunk size must be in the range {MIN_CHUNK_SIZE}-{MAX_CHUNK_SIZE} inclusive"
            )
        if not MIN_CHUNK_SIZE <= self.payload_size <= MAX_CHUNK_SIZE:
            raise ValidationError(
                f"payload size must be in the range {MIN_CHUNK_SIZE}-{MAX_CHUNK_SIZE} inclusive"
            )
        if not MIN_DURATION <= self.duration <= MAX_DURATION:
            raise ValidationError(
                f"duration must be in the range {MIN_DURATION:.0f}-{MAX_DURATION:.0f} inclusive"
            )
        if not MIN_PING_COUNT <= self.ping_count <= MAX_PING_COUNT:
            raise ValidationError(
                f"ping must be in the range {MIN_PING_COUNT}-{MAX_PING_COUNT} inclusive"
            )


def validate_server_count(count: int) -> None:
    if not MIN_SERVER_COUNT <= count <= MAX_SERVER_COUNT:
        raise ValidationError(
            f"count must be in the range {MIN_SERVER_COUNT}-{MAX_SERVER_COUNT} inclusive"
        )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "count": DEFAULT_SERVER_COUNT,
    "concurrency": DEFAULT_CONNECTIONS,
    "duration": DEFAULT_DURATION,
    "ping_count": DEFAULT_PING_COUNT,
    "chunk_size": DEFAULT_CHUNK_SIZE,
    "payload_size": DEFAULT_PAYLOAD_SIZE,
    "icmp": True,
    "binary": False,
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("ignoring unreadable config file %s: %s", path, exc)
        return config

    if isinstance(user, dict):
        config.update({k: v for k, v in user.items() if k in DEFAULTS})

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path
