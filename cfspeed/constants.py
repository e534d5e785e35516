"""
Shared constants used across all cfspeed modules.

Centralises endpoints, default headers, and the fixed measurement plan so
they live in exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = "cfspeed/1.0.0"

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "identity",
}

# ---------------------------------------------------------------------------
# speed.cloudflare.com endpoints
# ---------------------------------------------------------------------------

DEFAULT_HOST = "speed.cloudflare.com"

DOWNLOAD_PATH = "/__down"
UPLOAD_PATH = "/__up"
LOCATIONS_PATH = "/locations"
TRACE_PATH = "/cdn-cgi/trace"

# ``Server-Timing: cfRequestDuration;dur=12.345`` -- the duration starts
# right after the 22-character ``cfRequestDuration;dur=`` prefix.
SERVER_TIMING_HEADER = "Server-Timing"
SERVER_TIMING_OFFSET = 22

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT = 30.0           # seconds without progress (connect or read)
MIN_TIMEOUT = 1.0
MAX_TIMEOUT = 600.0

DEFAULT_LATENCY_COUNT = 20
DEFAULT_LATENCY_BYTES = 1000
MIN_LATENCY_COUNT = 1
MAX_LATENCY_COUNT = 100

DEFAULT_PERCENTILE = 0.9         # headline throughput quantile

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

CHUNK_SIZE = 64 * 1024
UPLOAD_FILL_BYTE = b"0"

# (payload bytes, iterations, label), ascending sizes.  Each size carries
# 1 kB on top of its nominal label.
DOWNLOAD_STEPS = (
    (11_000, 10, "10kB"),
    (101_000, 10, "100kB"),
    (1_001_000, 8, "1MB"),
    (10_001_000, 5, "10MB"),
    (25_001_000, 5, "25MB"),
    (100_001_000, 5, "100MB"),
)

UPLOAD_STEPS = (
    (11_000, 10, "10kB"),
    (101_000, 10, "100kB"),
    (1_001_000, 8, "1MB"),
)
