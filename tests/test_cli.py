"""Tests for the CLI: validation, argument handling, and output modes."""

import io
import json
import unittest
from unittest import mock

from cfspeed.bandwidth import BandwidthResult, SizeResult
from cfspeed.config import DEFAULTS, RunSettings
from cfspeed.constants import (
    DEFAULT_LATENCY_COUNT,
    DEFAULT_TIMEOUT,
    MAX_LATENCY_COUNT,
    MAX_TIMEOUT,
    MIN_LATENCY_COUNT,
    MIN_TIMEOUT,
)
from cfspeed.latency import LatencyResult
from cfspeed.plan import PlanStep
from cfspeed.runner import SpeedTestResult
from cfspeed.transfer import Direction


class TestValidation(unittest.TestCase):
    """Test the _validate function from speedtest.py."""

    def _validate(self, **kwargs):
        from speedtest import _validate
        defaults = {
            "latency_count": DEFAULT_LATENCY_COUNT,
            "percentile": 90,
            "timeout": DEFAULT_TIMEOUT,
        }
        defaults.update(kwargs)
        return _validate(**defaults)

    def test_defaults_valid(self):
        self._validate()

    def test_latency_count_too_low(self):
        with self.assertRaises(ValueError):
            self._validate(latency_count=MIN_LATENCY_COUNT - 1)

    def test_latency_count_too_high(self):
        with self.assertRaises(ValueError):
            self._validate(latency_count=MAX_LATENCY_COUNT + 1)

    def test_latency_count_boundaries(self):
        self._validate(latency_count=MIN_LATENCY_COUNT)
        self._validate(latency_count=MAX_LATENCY_COUNT)

    def test_percentile_range(self):
        self._validate(percentile=0)
        self._validate(percentile=100)
        with self.assertRaises(ValueError):
            self._validate(percentile=101)
        with self.assertRaises(ValueError):
            self._validate(percentile=-1)

    def test_timeout_range(self):
        with self.assertRaises(ValueError):
            self._validate(timeout=MIN_TIMEOUT - 0.5)
        with self.assertRaises(ValueError):
            self._validate(timeout=MAX_TIMEOUT + 1)


class TestArguments(unittest.TestCase):
    def _settings(self, argv):
        from speedtest import _settings_from_args, build_parser
        args = build_parser().parse_args(argv)
        with mock.patch("speedtest.load_config", return_value=dict(DEFAULTS)):
            return _settings_from_args(args)

    def test_defaults(self):
        s = self._settings([])
        self.assertEqual(s.host, "speed.cloudflare.com")
        self.assertEqual(s.latency_count, DEFAULT_LATENCY_COUNT)
        self.assertAlmostEqual(s.percentile, 0.9)
        self.assertFalse(s.reuse_connections)

    def test_overrides(self):
        s = self._settings([
            "--host", "example.com",
            "--latency-count", "5",
            "--percentile", "75",
            "--timeout", "10",
            "--reuse-connections",
        ])
        self.assertEqual(s.host, "example.com")
        self.assertEqual(s.latency_count, 5)
        self.assertAlmostEqual(s.percentile, 0.75)
        self.assertEqual(s.timeout, 10.0)
        self.assertTrue(s.reuse_connections)

    def test_output_flags(self):
        from speedtest import build_parser
        args = build_parser().parse_args(["--json", "--no-meta", "-v"])
        self.assertTrue(args.json)
        self.assertTrue(args.no_meta)
        self.assertTrue(args.verbose)
        self.assertFalse(args.simple)

    def test_malformed_config_exits_cleanly(self):
        import speedtest
        config = dict(DEFAULTS, download_plan=[[11000]])
        with mock.patch("sys.argv", ["speedtest"]), \
                mock.patch.object(speedtest, "_setup_logging"), \
                mock.patch.object(speedtest, "load_config", return_value=config), \
                mock.patch.object(speedtest, "console") as console:
            with self.assertRaises(SystemExit) as cm:
                speedtest.main()
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("plan entry", console.print.call_args[0][0])


def _fake_result():
    latency = LatencyResult(samples=[10.0, 12.0, 14.0], attempts=3)
    latency.calculate()

    down_size = SizeResult(PlanStep(Direction.DOWNLOAD, 11_000, 2, "10kB"), samples=[1.5, 2.0])
    download = BandwidthResult(Direction.DOWNLOAD, sizes=[down_size])
    download.calculate()

    up_size = SizeResult(PlanStep(Direction.UPLOAD, 11_000, 2, "10kB"), samples=[1.0], failures=1)
    upload = BandwidthResult(Direction.UPLOAD, sizes=[up_size])
    upload.calculate()

    return SpeedTestResult(latency=latency, download=download, upload=upload)


class TestRunCli(unittest.IsolatedAsyncioTestCase):
    async def _run(self, **kwargs):
        import speedtest
        fake = mock.AsyncMock(return_value=_fake_result())
        out = io.StringIO()
        with mock.patch.object(speedtest, "run_speedtest", fake), \
                mock.patch("sys.stdout", out):
            result = await speedtest.run_cli(settings=RunSettings(), fetch_meta=False, **kwargs)
        return result, out.getvalue()

    async def test_json_output(self):
        result, out = await self._run(json_output=True)
        printed = json.loads(out)
        self.assertEqual(printed["latency"]["median"], 12.0)
        self.assertEqual(printed["download"]["sizes"][0]["label"], "10kB")
        self.assertNotIn("client", printed)
        self.assertEqual(result["upload"]["sizes"][0]["failures"], 1)

    async def test_simple_output(self):
        _, out = await self._run(simple=True)
        self.assertIn("Latency: 12.00 ms", out)
        self.assertIn("10kB speed: 1.75 Mbps", out)
        self.assertIn("Upload speed: 1.00 Mbps", out)


class TestFetchClientInfo(unittest.IsolatedAsyncioTestCase):
    async def test_unreachable_host_is_not_fatal(self):
        from speedtest import _fetch_client_info
        settings = RunSettings(host="127.0.0.1:1", scheme="http")
        with self.assertLogs("cfspeed", level="WARNING"):
            info = await _fetch_client_info(settings)
        self.assertIsNone(info)


class TestDashboard(unittest.TestCase):
    def test_latency_details_without_stats(self):
        from ui.dashboard import print_latency_details
        # must not raise when every probe failed
        print_latency_details(LatencyResult(attempts=5))

    def test_histogram(self):
        from ui.dashboard import create_histogram
        self.assertEqual(create_histogram([]), "No data")
        self.assertEqual(len(create_histogram([1.0, 5.0, 3.0])), 3)
        self.assertEqual(create_histogram([2.0, 2.0]), "▁▁")


if __name__ == "__main__":
    unittest.main()
