"""
Upload speed test module.

Locally the upload looks finished as soon as the last byte is handed to the
socket, long before the server has received it.  The elapsed time therefore
comes from the server's own ``Server-Timing`` duration instead.
"""
from __future__ import annotations

from .bandwidth import BandwidthTester
from .transfer import Direction, TimingSample


class UploadTester(BandwidthTester):
    """Sequential POST probes of escalating size."""

    direction = Direction.UPLOAD

    def elapsed_ms(self, sample: TimingSample) -> float:
        return sample.server_processing_time_ms
