"""
HTTP latency measurement.

Each probe downloads a tiny payload; the network-only latency is the time
to first byte minus the processing time the server reports for itself::

    latency = time_to_first_byte - started - server_processing_time_ms
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .constants import DEFAULT_LATENCY_BYTES, DEFAULT_LATENCY_COUNT
from .errors import InvalidInput, TransferFailed
from .stats import SummaryStatistics
from .transfer import TimedTransfer

logger = logging.getLogger(__name__)


@dataclass
class LatencyResult:
    """Latency samples and their summary."""

    samples: List[float] = field(default_factory=list)
    attempts: int = 0
    stats: Optional[SummaryStatistics] = None

    @property
    def failures(self) -> int:
        return self.attempts - len(self.samples)

    def calculate(self) -> None:
        """Summarise the samples; raises ``InvalidInput`` if there are none."""
        self.stats = SummaryStatistics.of(self.samples)

    def to_dict(self) -> dict:
        result: dict = {
            "attempts": self.attempts,
            "failures": self.failures,
        }
        if self.stats:
            result.update(self.stats.to_dict())
        return result


class LatencyTester:
    """Sequential latency probes against a single ``TimedTransfer``."""

    def __init__(
        self,
        transfer: TimedTransfer,
        count: int = DEFAULT_LATENCY_COUNT,
        payload_bytes: int = DEFAULT_LATENCY_BYTES,
    ) -> None:
        self.transfer = transfer
        self.count = count
        self.payload_bytes = payload_bytes
        self.on_probe: Optional[Callable[[int, int], None]] = None

    async def test(self) -> LatencyResult:
        result = LatencyResult()

        for i in range(self.count):
            result.attempts += 1
            try:
                sample = await self.transfer.download(self.payload_bytes)
            except (TransferFailed, InvalidInput) as exc:
                logger.warning("Latency probe %d/%d failed: %s", i + 1, self.count, exc)
            else:
                result.samples.append(sample.network_latency_ms)

            if self.on_probe:
                self.on_probe(i + 1, self.count)

        result.calculate()
        return result
