"""
Download speed test module.

Throughput is measured locally: the time between the first response byte
and the last one, so connection setup and server work are excluded.
"""
from __future__ import annotations

from .bandwidth import BandwidthTester
from .transfer import Direction, TimingSample


class DownloadTester(BandwidthTester):
    """Sequential GET probes of escalating size."""

    direction = Direction.DOWNLOAD

    def elapsed_ms(self, sample: TimingSample) -> float:
        return sample.transfer_ms
