"""
speed.cloudflare.com metadata client.

Fetches the edge-location directory and the client's own trace info.  All
HTTP work goes through a single ``aiohttp.ClientSession`` managed via
async-context-manager protocol (``async with CloudflareAPI() as api: ...``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from .constants import COMMON_HEADERS, DEFAULT_HOST, LOCATIONS_PATH, TRACE_PATH


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass
class ClientInfo:
    """Client address and the edge node serving it, from ``/cdn-cgi/trace``."""

    ip: str
    loc: str
    colo: str
    city: str = ""

    @classmethod
    def from_trace(cls, trace: Dict[str, str]) -> ClientInfo:
        return cls(
            ip=trace.get("ip", ""),
            loc=trace.get("loc", ""),
            colo=trace.get("colo", ""),
        )

    @property
    def server_location(self) -> str:
        if self.city:
            return f"{self.city} ({self.colo})"
        return self.colo

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "loc": self.loc,
            "colo": self.colo,
            "city": self.city,
        }


def parse_trace(text: str) -> Dict[str, str]:
    """Parse newline-delimited ``key=value`` text; other lines are ignored."""
    data: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            data[key.strip()] = value.strip()
    return data


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

class CloudflareAPI:
    """Async context-manager wrapping the speed.cloudflare.com metadata API."""

    def __init__(self, host: str = DEFAULT_HOST, scheme: str = "https") -> None:
        self.base_url = f"{scheme}://{host}"
        self._session: Optional[aiohttp.ClientSession] = None
        self.locations: Dict[str, str] = {}
        self.client_info: Optional[ClientInfo] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> CloudflareAPI:
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
                "CloudflareAPI must be used as an async context manager "
                "(async with CloudflareAPI() as api: ...)"
            )
        return self._session

    # -- Public methods -----------------------------------------------------

    async def fetch_locations(self) -> Dict[str, str]:
        """Return a mapping of IATA location code to city name."""
        session = self._ensure_session()

        async with session.get(self.base_url + LOCATIONS_PATH) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)

        self.locations = {
            entry["iata"]: entry.get("city", "")
            for entry in data
            if isinstance(entry, dict) and "iata" in entry
        }
        return self.locations

    async def fetch_client_info(self) -> ClientInfo:
        """Client IP, approximate location and serving edge node."""
        session = self._ensure_session()

        async with session.get(self.base_url + TRACE_PATH) as resp:
            resp.raise_for_status()
            text = await resp.text()

        info = ClientInfo.from_trace(parse_trace(text))
        info.city = self.locations.get(info.colo, "")
        self.client_info = info
        return info
