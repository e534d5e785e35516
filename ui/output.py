"""
Output formatting -- JSON export and plain text.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cfspeed.stats import format_latency, format_speed


def create_result_json(
    client_info: Optional[Dict[str, Any]],
    latency_results: Dict[str, Any],
    download_results: Dict[str, Any],
    upload_results: Dict[str, Any],
) -> Dict[str, Any]:
    """Build a JSON-serialisable dict from the per-stage ``to_dict()`` output."""
    result: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "latency": {
            "min": latency_results.get("min", 0),
            "max": latency_results.get("max", 0),
            "average": latency_results.get("average", 0),
            "median": latency_results.get("median", 0),
            "jitter": latency_results.get("jitter", 0),
            "count": latency_results.get("count", 0),
            "samples": latency_results.get("samples", []),
        },
        "download": {
            "speed_mbps": download_results.get("speed_mbps", 0),
            "percentile": download_results.get("percentile", 0),
            "sizes": download_results.get("sizes", []),
        },
        "upload": {
            "speed_mbps": upload_results.get("speed_mbps", 0),
            "percentile": upload_results.get("percentile", 0),
            "sizes": upload_results.get("sizes", []),
        },
    }

    if client_info:
        result["client"] = client_info

    return result


# ---------------------------------------------------------------------------
# Plain-text helpers
# ---------------------------------------------------------------------------

def format_size_line(label: str, median_mbps: Optional[float]) -> str:
    """``   10kB speed: 1.76 Mbps`` -- right-aligned like the headline lines."""
    speed = format_speed(median_mbps) if median_mbps is not None else "n/a"
    return f"{label:>9} speed: {speed}"


def format_text_result(
    latency_ms: float,
    download_mbps: float,
    upload_mbps: float,
    size_lines: Optional[List[str]] = None,
    server_location: str = "",
    ip: str = "",
) -> str:
    sep = "=" * 50
    lines = [sep, "Speedtest Results", sep]
    if server_location:
        lines.append(f"Server location: {server_location}")
    if ip:
        lines.append(f"Your IP: {ip}")
    lines.append(f"Latency: {format_latency(latency_ms)}")
    lines.extend(size_lines or [])
    lines.append(f"Download speed: {format_speed(download_mbps)}")
    lines.append(f"Upload speed: {format_speed(upload_mbps)}")
    lines.append(sep)
    return "\n".join(lines)
