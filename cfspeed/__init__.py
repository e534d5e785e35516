"""cfspeed -- timed transfers, throughput, and statistics against speed.cloudflare.com."""

from .api import ClientInfo, CloudflareAPI, parse_trace
from .bandwidth import BandwidthResult, BandwidthTester, SizeResult
from .config import RunSettings, load_config
from .download import DownloadTester
from .errors import InvalidInput, MalformedServerResponse, SpeedtestError, TransferFailed
from .latency import LatencyResult, LatencyTester
from .plan import PlanStep, TestPlan
from .runner import SpeedTest, SpeedTestResult, run_speedtest
from .stats import (
    SummaryStatistics,
    average,
    format_latency,
    format_speed,
    median,
    quantile,
    throughput_mbps,
)
from .transfer import Direction, TimedTransfer, TimingSample, parse_server_timing
from .upload import UploadTester

__version__ = "1.0.0"

__all__ = [
    "BandwidthResult",
    "BandwidthTester",
    "ClientInfo",
    "CloudflareAPI",
    "Direction",
    "DownloadTester",
    "InvalidInput",
    "LatencyResult",
    "LatencyTester",
    "MalformedServerResponse",
    "PlanStep",
    "RunSettings",
    "SizeResult",
    "SpeedTest",
    "SpeedTestResult",
    "SpeedtestError",
    "SummaryStatistics",
    "TestPlan",
    "TimedTransfer",
    "TimingSample",
    "TransferFailed",
    "UploadTester",
    "average",
    "format_latency",
    "format_speed",
    "load_config",
    "median",
    "parse_server_timing",
    "parse_trace",
    "quantile",
    "run_speedtest",
    "throughput_mbps",
]
