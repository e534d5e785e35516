"""
Shared machinery for the download and upload stages.

A stage walks its plan steps in order, running every probe to completion
before the next one starts.  Each probe becomes one throughput sample; the
stage reports the median per payload size and a headline quantile over all
sizes together.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .constants import DEFAULT_PERCENTILE
from .errors import InvalidInput, TransferFailed
from .plan import PlanStep
from .stats import median, quantile, throughput_mbps
from .transfer import Direction, TimedTransfer, TimingSample

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class SizeResult:
    """Throughput samples collected for one plan step."""

    step: PlanStep
    samples: List[float] = field(default_factory=list)
    failures: int = 0

    @property
    def median_mbps(self) -> Optional[float]:
        return median(self.samples) if self.samples else None

    def to_dict(self) -> dict:
        m = self.median_mbps
        return {
            "label": self.step.name,
            "bytes": self.step.payload_bytes,
            "iterations": self.step.iterations,
            "failures": self.failures,
            "median_mbps": None if m is None else round(m, 2),
            "samples": [round(s, 2) for s in self.samples],
        }


@dataclass
class BandwidthResult:
    """Outcome of a full download or upload stage."""

    direction: Direction
    percentile: float = DEFAULT_PERCENTILE
    sizes: List[SizeResult] = field(default_factory=list)
    speed_mbps: float = 0.0

    @property
    def samples(self) -> List[float]:
        return [s for size in self.sizes for s in size.samples]

    def calculate(self) -> None:
        """Headline figure; raises ``InvalidInput`` if every probe failed."""
        self.speed_mbps = quantile(self.samples, self.percentile)

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "percentile": self.percentile,
            "speed_mbps": round(self.speed_mbps, 2),
            "sizes": [s.to_dict() for s in self.sizes],
        }


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class BandwidthTester:
    """Base class for the download and upload testers.

    Subclasses set ``direction`` and define how long a probe took.
    """

    direction: Direction

    def __init__(self, transfer: TimedTransfer, percentile: float = DEFAULT_PERCENTILE) -> None:
        self.transfer = transfer
        self.percentile = percentile
        self.on_probe: Optional[Callable[[PlanStep, int, int], None]] = None
        self.on_step_done: Optional[Callable[[SizeResult], None]] = None

    def elapsed_ms(self, sample: TimingSample) -> float:
        raise NotImplementedError

    async def _probe(self, step: PlanStep) -> float:
        sample = await self.transfer.transfer(self.direction, step.payload_bytes)
        return throughput_mbps(step.payload_bytes, self.elapsed_ms(sample))

    async def test(self, steps: Sequence[PlanStep]) -> BandwidthResult:
        result = BandwidthResult(direction=self.direction, percentile=self.percentile)

        for step in steps:
            if step.direction is not self.direction:
                raise InvalidInput(f"{step.direction.value} step given to {self.direction.value} stage")

            size = SizeResult(step=step)
            result.sizes.append(size)

            for i in range(step.iterations):
                try:
                    size.samples.append(await self._probe(step))
                except (TransferFailed, InvalidInput) as exc:
                    size.failures += 1
                    logger.warning(
                        "%s probe %d/%d (%s) failed: %s",
                        self.direction.value.capitalize(),
                        i + 1,
                        step.iterations,
                        step.name,
                        exc,
                    )

                if self.on_probe:
                    self.on_probe(step, i + 1, step.iterations)

            if self.on_step_done:
                self.on_step_done(size)

        result.calculate()
        return result
