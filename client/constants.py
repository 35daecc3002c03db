"""
Shared constants used across all client modules.

Centralises endpoints, default headers, and the bounds enforced on user
input so they live in exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Origin": "https://fast.com",
    "Referer": "https://fast.com/",
}

# ---------------------------------------------------------------------------
# fast.com endpoints
# ---------------------------------------------------------------------------

FAST_BASE_URL = "https://fast.com"
FAST_API_URL = "https://api.fast.com/netflix/speedtest/v2"

# ---------------------------------------------------------------------------
# Server selection
# ---------------------------------------------------------------------------

MIN_SERVER_COUNT = 1
MAX_SERVER_COUNT = 5
DEFAULT_SERVER_COUNT = 1

# ---------------------------------------------------------------------------
# Connection limits
# ---------------------------------------------------------------------------

MIN_CONNECTIONS = 1
MAX_CONNECTIONS = 32
DEFAULT_CONNECTIONS = 3

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_PING_COUNT = 3
MIN_PING_COUNT = 1
MAX_PING_COUNT = 5

DEFAULT_DURATION = 15.0         # seconds for download / upload
MIN_DURATION = 3.0
MAX_DURATION = 30.0

HTTP_PROBE_TIMEOUT = 10.0       # per-request timeout of the HTTP prober
ICMP_REPLY_TIMEOUT = 2.0        # wait for a single echo reply
SAMPLE_INTERVAL = 0.2           # 200 ms between progress samples
ERROR_BACKOFF = 0.2             # pause before admitting a new transfer after a failure

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 26_214_400     # 25 MiB
DEFAULT_CHUNK_SIZE = MAX_CHUNK_SIZE
DEFAULT_PAYLOAD_SIZE = 25 * 1024 * 1024

READ_CHUNK_SIZE = 256 * 1024    # 256 KB body reads
