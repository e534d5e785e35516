"""Fixed measurement plan: which payload sizes to probe, and how often."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .constants import DOWNLOAD_STEPS, UPLOAD_STEPS
from .errors import InvalidInput
from .stats import format_size
from .transfer import Direction


@dataclass(frozen=True)
class PlanStep:
    """One ``(direction, payload size, iteration count)`` entry."""

    direction: Direction
    payload_bytes: int
    iterations: int
    label: Optional[str] = None

    @property
    def name(self) -> str:
        return self.label or format_size(self.payload_bytes)

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "bytes": self.payload_bytes,
            "iterations": self.iterations,
            "label": self.name,
        }


def _step(direction: Direction, entry: Sequence) -> PlanStep:
    if isinstance(entry, (str, bytes)) or not isinstance(entry, Sequence) or len(entry) not in (2, 3):
        raise InvalidInput(
            f"{direction.value} plan entry must be [bytes, iterations] or "
            f"[bytes, iterations, label], got {entry!r}"
        )
    try:
        payload_bytes, iterations = int(entry[0]), int(entry[1])
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{direction.value} plan entry {entry!r}: {exc}") from exc
    label = str(entry[2]) if len(entry) == 3 and entry[2] is not None else None
    return PlanStep(direction, payload_bytes, iterations, label)


@dataclass(frozen=True)
class TestPlan:
    """Ordered, immutable list of plan steps covering both directions."""

    __test__ = False  # not a pytest test class

    steps: Tuple[PlanStep, ...]

    def __post_init__(self) -> None:
        for step in self.steps:
            if step.payload_bytes <= 0:
                raise InvalidInput(f"payload size must be positive: {step}")
            if step.iterations <= 0:
                raise InvalidInput(f"iteration count must be positive: {step}")

        for direction in Direction:
            sizes = [s.payload_bytes for s in self.for_direction(direction)]
            if sizes != sorted(sizes):
                raise InvalidInput(f"{direction.value} sizes must be ascending: {sizes}")

    def for_direction(self, direction: Direction) -> Tuple[PlanStep, ...]:
        return tuple(s for s in self.steps if s.direction is direction)

    @property
    def total_probes(self) -> int:
        return sum(s.iterations for s in self.steps)

    @classmethod
    def from_pairs(
        cls,
        download: Iterable[Tuple] = (),
        upload: Iterable[Tuple] = (),
    ) -> TestPlan:
        """Build a plan from ``(bytes, iterations[, label])`` tuples per direction."""
        steps = [_step(Direction.DOWNLOAD, entry) for entry in download]
        steps += [_step(Direction.UPLOAD, entry) for entry in upload]
        return cls(steps=tuple(steps))

    @classmethod
    def default(cls) -> TestPlan:
        return cls.from_pairs(download=DOWNLOAD_STEPS, upload=UPLOAD_STEPS)

    def to_dict(self) -> dict:
        return {"steps": [s.to_dict() for s in self.steps]}
