"""Tests for cfspeed.config -- config file loading and run settings."""

import json
import os
import tempfile
import unittest
from unittest import mock

from cfspeed.config import DEFAULTS, RunSettings, load_config
from cfspeed.errors import InvalidInput
from cfspeed.transfer import Direction


class TestConfigDefaults(unittest.TestCase):
    def test_defaults_have_required_keys(self):
        for key in ("host", "timeout", "reuse_connections", "latency_count",
                    "latency_bytes", "percentile", "download_plan", "upload_plan"):
            self.assertIn(key, DEFAULTS)

    def test_default_settings(self):
        s = RunSettings()
        self.assertEqual(s.host, "speed.cloudflare.com")
        self.assertEqual(s.scheme, "https")
        self.assertEqual(s.latency_count, 20)
        self.assertEqual(s.latency_bytes, 1000)
        self.assertAlmostEqual(s.percentile, 0.9)
        self.assertFalse(s.reuse_connections)


class TestLoadConfig(unittest.TestCase):
    def _write(self, tmpdir, content):
        path = os.path.join(tmpdir, "config.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_load_defaults_when_missing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.json")
            with mock.patch("cfspeed.config._config_path", return_value=path):
                cfg = load_config()
        self.assertEqual(cfg, DEFAULTS)

    def test_user_values_override(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, json.dumps({"latency_count": 5, "timeout": 10}))
            with mock.patch("cfspeed.config._config_path", return_value=path):
                cfg = load_config()
        self.assertEqual(cfg["latency_count"], 5)
        self.assertEqual(cfg["timeout"], 10)
        # Defaults still present
        self.assertEqual(cfg["host"], "speed.cloudflare.com")

    def test_corrupt_file_returns_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "NOT JSON")
            with mock.patch("cfspeed.config._config_path", return_value=path):
                with self.assertLogs("cfspeed.config", level="WARNING"):
                    cfg = load_config()
        self.assertEqual(cfg["latency_count"], 20)

    def test_non_object_ignored(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "[1, 2, 3]")
            with mock.patch("cfspeed.config._config_path", return_value=path):
                cfg = load_config()
        self.assertEqual(cfg, DEFAULTS)


class TestRunSettingsFromConfig(unittest.TestCase):
    def test_defaults(self):
        s = RunSettings.from_config(dict(DEFAULTS))
        self.assertEqual(s.plan.total_probes, RunSettings().plan.total_probes)

    def test_custom_plan(self):
        s = RunSettings.from_config({
            "download_plan": [[1000, 2], [5000, 1, "big"]],
            "upload_plan": [[1000, 1]],
        })
        down = s.plan.for_direction(Direction.DOWNLOAD)
        self.assertEqual([d.payload_bytes for d in down], [1000, 5000])
        self.assertEqual(down[1].name, "big")
        self.assertEqual(len(s.plan.for_direction(Direction.UPLOAD)), 1)

    def test_coerces_types(self):
        s = RunSettings.from_config({"timeout": "12", "latency_count": "7"})
        self.assertEqual(s.timeout, 12.0)
        self.assertEqual(s.latency_count, 7)

    def test_bad_plan(self):
        with self.assertRaises(InvalidInput):
            RunSettings.from_config({"upload_plan": [[5000, 1], [1000, 1]]})

    def test_plan_entry_missing_iterations(self):
        with self.assertRaises(InvalidInput):
            RunSettings.from_config({"download_plan": [[11000]]})

    def test_plan_entry_not_a_list(self):
        with self.assertRaises(InvalidInput):
            RunSettings.from_config({"download_plan": [11000, 10]})
        with self.assertRaises(InvalidInput):
            RunSettings.from_config({"upload_plan": 5})

    def test_plan_entry_not_numeric(self):
        with self.assertRaises(InvalidInput):
            RunSettings.from_config({"download_plan": [["big", 10]]})

    def test_null_value(self):
        with self.assertRaises(InvalidInput):
            RunSettings.from_config({"latency_count": None})

    def test_boolean_strings(self):
        self.assertFalse(RunSettings.from_config({"reuse_connections": "false"}).reuse_connections)
        self.assertFalse(RunSettings.from_config({"reuse_connections": "0"}).reuse_connections)
        self.assertTrue(RunSettings.from_config({"reuse_connections": "true"}).reuse_connections)
        self.assertTrue(RunSettings.from_config({"reuse_connections": True}).reuse_connections)


if __name__ == "__main__":
    unittest.main()
