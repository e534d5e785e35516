"""
Network measurement statistics.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

import math
import statistics
from dataclasses import dataclass, field
from typing import List, Sequence

from .errors import InvalidInput


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def _require_samples(samples: Sequence[float]) -> None:
    if not samples:
        raise InvalidInput("statistics are undefined for an empty sample set")


def average(samples: Sequence[float]) -> float:
    """Arithmetic mean."""
    _require_samples(samples)
    return statistics.mean(samples)


def median(samples: Sequence[float]) -> float:
    """Middle value; mean of the two middle values for even-length input."""
    _require_samples(samples)
    return statistics.median(samples)


def quantile(samples: Sequence[float], q: float) -> float:
    """Linear-interpolation quantile, ``q`` in ``[0, 1]``."""
    _require_samples(samples)
    if not 0.0 <= q <= 1.0:
        raise InvalidInput(f"quantile must be within [0, 1], got {q}")

    ordered = sorted(samples)
    idx = q * (len(ordered) - 1)
    lower = math.floor(idx)
    upper = math.ceil(idx)
    if lower == upper:
        return ordered[lower]
    weight = idx - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * weight


def calculate_jitter(samples: Sequence[float]) -> float:
    """Mean absolute difference between consecutive samples."""
    if len(samples) < 2:
        return 0.0
    diffs = [abs(samples[i] - samples[i - 1]) for i in range(1, len(samples))]
    return sum(diffs) / len(diffs)


# ---------------------------------------------------------------------------
# Throughput
# ---------------------------------------------------------------------------

def throughput_mbps(num_bytes: int, duration_ms: float) -> float:
    """Megabits per second for *num_bytes* moved in *duration_ms*."""
    if duration_ms <= 0:
        raise InvalidInput(f"transfer duration must be positive, got {duration_ms} ms")
    if num_bytes < 0:
        raise InvalidInput(f"byte count must not be negative, got {num_bytes}")
    return (num_bytes * 8) / (duration_ms / 1000) / 1_000_000


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class SummaryStatistics:
    """Read-only summary over a non-empty list of samples."""

    samples: List[float] = field(default_factory=list)
    min: float = 0.0
    max: float = 0.0
    average: float = 0.0
    median: float = 0.0
    jitter: float = 0.0
    count: int = 0

    @classmethod
    def of(cls, samples: Sequence[float]) -> SummaryStatistics:
        _require_samples(samples)
        values = list(samples)
        return cls(
            samples=values,
            min=min(values),
            max=max(values),
            average=average(values),
            median=median(values),
            jitter=calculate_jitter(values),
            count=len(values),
        )

    def quantile(self, q: float) -> float:
        return quantile(self.samples, q)

    def to_dict(self) -> dict:
        return {
            "samples": [round(s, 3) for s in self.samples],
            "min": round(self.min, 3),
            "max": round(self.max, 3),
            "average": round(self.average, 3),
            "median": round(self.median, 3),
            "jitter": round(self.jitter, 3),
            "count": self.count,
        }


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.2f} ms"


def format_size(num_bytes: int) -> str:
    """Short payload label: ``10kB``, ``1MB`` ... (decimal units, floored)."""
    if num_bytes >= 1_000_000:
        return f"{num_bytes // 1_000_000}MB"
    if num_bytes >= 1_000:
        return f"{num_bytes // 1_000}kB"
    return f"{num_bytes}B"
