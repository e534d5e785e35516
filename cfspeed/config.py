"""
User configuration file support.

Reads ``~/.cfspeed/config.json``; every key is optional and falls back to
the built-in default.

Supported keys::

    host = "speed.cloudflare.com"
    timeout = 30.0              # seconds without progress per transfer
    reuse_connections = false   # pool connections between probes
    latency_count = 20
    latency_bytes = 1000
    percentile = 0.9            # headline throughput quantile
    download_plan = [[11000, 10, "10kB"], ...]
    upload_plan = [[11000, 10, "10kB"], ...]
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from .constants import (
    DEFAULT_HOST,
    DEFAULT_LATENCY_BYTES,
    DEFAULT_LATENCY_COUNT,
    DEFAULT_PERCENTILE,
    DEFAULT_TIMEOUT,
    DOWNLOAD_STEPS,
    UPLOAD_STEPS,
)
from .errors import InvalidInput
from .plan import TestPlan

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".cfspeed")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "host": DEFAULT_HOST,
    "timeout": DEFAULT_TIMEOUT,
    "reuse_connections": False,
    "latency_count": DEFAULT_LATENCY_COUNT,
    "latency_bytes": DEFAULT_LATENCY_BYTES,
    "percentile": DEFAULT_PERCENTILE,
    "download_plan": [list(s) for s in DOWNLOAD_STEPS],
    "upload_plan": [list(s) for s in UPLOAD_STEPS],
}


# ---------------------------------------------------------------------------
# Read
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
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)

    return config


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()


_TRUE_STRINGS = ("1", "true", "yes", "on")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


# ---------------------------------------------------------------------------
# Run settings
# ---------------------------------------------------------------------------

@dataclass
class RunSettings:
    """Everything a measurement run needs, passed explicitly to the runner."""

    host: str = DEFAULT_HOST
    scheme: str = "https"
    timeout: float = DEFAULT_TIMEOUT
    reuse_connections: bool = False
    latency_count: int = DEFAULT_LATENCY_COUNT
    latency_bytes: int = DEFAULT_LATENCY_BYTES
    percentile: float = DEFAULT_PERCENTILE
    plan: TestPlan = field(default_factory=TestPlan.default)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> RunSettings:
        """Build settings from a ``load_config()`` dict.

        Raises ``InvalidInput`` if a value or the configured plan is malformed.
        """
        merged = {**DEFAULTS, **config}
        try:
            return cls(
                host=str(merged["host"]),
                timeout=float(merged["timeout"]),
                reuse_connections=_as_bool(merged["reuse_connections"]),
                latency_count=int(merged["latency_count"]),
                latency_bytes=int(merged["latency_bytes"]),
                percentile=float(merged["percentile"]),
                plan=TestPlan.from_pairs(
                    download=merged["download_plan"],
                    upload=merged["upload_plan"],
                ),
            )
        except TypeError as exc:
            raise InvalidInput(f"malformed configuration value: {exc}") from exc
