"""
Rate and sample statistics.

Pure functions -- no I/O, no side effects.  Everything here is deterministic
and easy to unit-test.
"""
from __future__ import annotations

import math
from typing import List, Sequence

_DECIMAL_RATE_UNITS = ("bps", "Kbps", "Mbps", "Gbps")
_BINARY_RATE_UNITS = ("bit/s", "Kibit/s", "Mibit/s", "Gibit/s")
_DECIMAL_BYTE_UNITS = ("B", "KB", "MB", "GB")
_BINARY_BYTE_UNITS = ("B", "KiB", "MiB", "GiB")


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------

def bits_per_second(byte_count: float, elapsed_seconds: float) -> float:
    """Convert *byte_count* moved in *elapsed_seconds* to bits per second.

    ``elapsed_seconds`` must be positive; callers guarantee it.
    """
    return (byte_count * 8) / elapsed_seconds


def calculate_mbps(byte_count: float, elapsed_seconds: float) -> float:
    """Same as :func:`bits_per_second`, in decimal megabits per second."""
    return (byte_count * 8) / (elapsed_seconds * 1_000_000)


# ---------------------------------------------------------------------------
# Sample statistics
# ---------------------------------------------------------------------------

def calculate_mean(samples: Sequence[float]) -> float:
    """Arithmetic mean.  *samples* must not be empty."""
    return sum(samples) / len(samples)


def calculate_stddev(samples: Sequence[float], mean: float) -> float:
    """Population standard deviation around *mean*.  *samples* must not be empty."""
    variance = sum((s - mean) ** 2 for s in samples) / len(samples)
    return math.sqrt(variance)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def _scale(value: float, units: Sequence[str], base: float) -> str:
    idx = 0
    while value >= base and idx < len(units) - 1:
        value /= base
        idx += 1
    return f"{value:.2f} {units[idx]}"


def format_rate(bps: float, binary: bool = False) -> str:
    """Human-readable bit rate, e.g. ``"1.00 Mbps"`` or ``"1.00 Mibit/s"``."""
    if binary:
        return _scale(bps, _BINARY_RATE_UNITS, 1024.0)
    return _scale(bps, _DECIMAL_RATE_UNITS, 1000.0)


def format_bytes(byte_count: float, binary: bool = False) -> str:
    """Human-readable byte count, e.g. ``"1.00 KB"`` or ``"1.00 KiB"``."""
    if binary:
        return _scale(byte_count, _BINARY_BYTE_UNITS, 1024.0)
    return _scale(byte_count, _DECIMAL_BYTE_UNITS, 1000.0)


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"


def format_samples(samples: List[float]) -> str:
    """Compact rendering of a list of Mbps figures."""
    return "[" + ", ".join(f"{s:.2f}" for s in samples) + "]"
