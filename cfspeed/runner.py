"""
Measurement orchestrator.

Runs the three stages strictly one after another -- latency, download,
upload -- against a single ``TimedTransfer``.  Only one probe is ever in
flight; concurrent transfers would compete for the very bandwidth being
measured.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .bandwidth import BandwidthResult, SizeResult
from .config import RunSettings
from .download import DownloadTester
from .errors import InvalidInput
from .latency import LatencyResult, LatencyTester
from .transfer import Direction, TimedTransfer
from .upload import UploadTester

logger = logging.getLogger(__name__)


@dataclass
class SpeedTestResult:
    latency: LatencyResult
    download: BandwidthResult
    upload: BandwidthResult

    def to_dict(self) -> dict:
        return {
            "latency": self.latency.to_dict(),
            "download": self.download.to_dict(),
            "upload": self.upload.to_dict(),
        }


class SpeedTest:
    """Latency -> download -> upload, each stage completing before the next.

    Optional hooks for a presentation layer:

    * ``on_stage(name)`` -- a stage is about to start
    * ``on_probe(name, done, total)`` -- a probe finished (success or not)
    * ``on_size(result)`` -- all probes of one payload size finished
    * ``on_stage_done(name, result)`` -- a stage finished with *result*
    """

    def __init__(self, transfer: TimedTransfer, settings: Optional[RunSettings] = None) -> None:
        self.transfer = transfer
        self.settings = settings or RunSettings()
        self.on_stage: Optional[Callable[[str], None]] = None
        self.on_probe: Optional[Callable[[str, int, int], None]] = None
        self.on_size: Optional[Callable[[SizeResult], None]] = None
        self.on_stage_done: Optional[Callable[[str, object], None]] = None

    def _notify_stage(self, name: str) -> None:
        logger.info("Starting %s stage", name)
        if self.on_stage:
            self.on_stage(name)

    def _finish_stage(self, name: str, result: object) -> None:
        if self.on_stage_done:
            self.on_stage_done(name, result)

    def _probe_hook(self, name: str, total: int) -> Callable[..., None]:
        done = 0

        def _hook(*_args) -> None:  # noqa: ANN002
            nonlocal done
            done += 1
            if self.on_probe:
                self.on_probe(name, done, total)

        return _hook

    async def run_latency(self) -> LatencyResult:
        s = self.settings
        self._notify_stage("latency")
        tester = LatencyTester(self.transfer, count=s.latency_count, payload_bytes=s.latency_bytes)
        tester.on_probe = self._probe_hook("latency", s.latency_count)
        result = await tester.test()
        self._finish_stage("latency", result)
        return result

    async def run_download(self) -> BandwidthResult:
        return await self._run_bandwidth(DownloadTester(self.transfer, self.settings.percentile))

    async def run_upload(self) -> BandwidthResult:
        return await self._run_bandwidth(UploadTester(self.transfer, self.settings.percentile))

    async def _run_bandwidth(self, tester) -> BandwidthResult:  # noqa: ANN001
        direction: Direction = tester.direction
        steps = self.settings.plan.for_direction(direction)
        total = sum(step.iterations for step in steps)

        self._notify_stage(direction.value)
        tester.on_probe = self._probe_hook(direction.value, total)
        tester.on_step_done = self.on_size
        result = await tester.test(steps)
        self._finish_stage(direction.value, result)
        return result

    async def run(self) -> SpeedTestResult:
        """Run all stages.

        A stage in which every probe failed raises ``InvalidInput`` and
        aborts the run; there is no meaningful figure to report.
        """
        stage = "latency"
        try:
            latency = await self.run_latency()
            stage = Direction.DOWNLOAD.value
            download = await self.run_download()
            stage = Direction.UPLOAD.value
            upload = await self.run_upload()
        except InvalidInput:
            logger.error("The %s stage produced no usable samples; aborting", stage)
            raise

        return SpeedTestResult(latency=latency, download=download, upload=upload)


async def run_speedtest(
    settings: Optional[RunSettings] = None,
    configure: Optional[Callable[[SpeedTest], None]] = None,
) -> SpeedTestResult:
    """Open a ``TimedTransfer`` for *settings* and run the full sequence.

    *configure* may attach hooks to the ``SpeedTest`` before it starts.
    """
    settings = settings or RunSettings()
    async with TimedTransfer(
        settings.host,
        scheme=settings.scheme,
        timeout=settings.timeout,
        reuse_connections=settings.reuse_connections,
    ) as transfer:
        test = SpeedTest(transfer, settings)
        if configure:
            configure(test)
        return await test.run()

