"""Zoomies client library -- server ranking, throughput testing, and statistics."""

from .api import ClientInfo, FastAPI, Server, generate_payload
from .config import TestConfig, load_config
from .download import DownloadTester
from .errors import (
    InvalidServerURLError,
    NoCandidatesError,
    ProbeError,
    ScriptNotFoundError,
    TokenError,
    TokenNotFoundError,
    ValidationError,
    ZoomiesError,
)
from .latency import HTTPProber, ICMPProber, LatencyResult, Prober, get_prober
from .ranking import Candidate, rank_servers
from .stats import (
    bits_per_second,
    calculate_mbps,
    calculate_mean,
    calculate_stddev,
    format_bytes,
    format_latency,
    format_rate,
)
from .throughput import Direction, ThroughputResult, ThroughputTester
from .upload import UploadTester

__all__ = [
    "Candidate",
    "ClientInfo",
    "Direction",
    "DownloadTester",
    "FastAPI",
    "HTTPProber",
    "ICMPProber",
    "InvalidServerURLError",
    "LatencyResult",
    "NoCandidatesError",
    "ProbeError",
    "Prober",
    "ScriptNotFoundError",
    "Server",
    "TestConfig",
    "ThroughputResult",
    "ThroughputTester",
    "TokenError",
    "TokenNotFoundError",
    "UploadTester",
    "ValidationError",
    "ZoomiesError",
    "bits_per_second",
    "calculate_mbps",
    "calculate_mean",
    "calculate_stddev",
    "format_bytes",
    "format_latency",
    "format_rate",
    "generate_payload",
    "get_prober",
    "load_config",
    "rank_servers",
]
