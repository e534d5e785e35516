"""Unit tests for ui.output -- JSON creation and text formatting."""

import json
import unittest

from ui.output import create_result_json, format_size_line, format_text_result


class TestCreateResultJson(unittest.TestCase):
    def _make(self, **overrides):
        defaults = dict(
            client_info={"ip": "1.2.3.4", "loc": "DE", "colo": "FRA", "city": "Frankfurt"},
            latency_results={
                "attempts": 3, "failures": 0, "samples": [9.0, 10.0, 11.0],
                "min": 9.0, "max": 11.0, "average": 10.0, "median": 10.0,
                "jitter": 1.0, "count": 3,
            },
            download_results={"direction": "download", "percentile": 0.9,
                              "speed_mbps": 100.0, "sizes": [{"label": "10kB"}]},
            upload_results={"direction": "upload", "percentile": 0.9,
                            "speed_mbps": 50.0, "sizes": []},
        )
        defaults.update(overrides)
        return create_result_json(**defaults)

    def test_basic_structure(self):
        r = self._make()
        for key in ("timestamp", "client", "latency", "download", "upload"):
            self.assertIn(key, r)

    def test_values(self):
        r = self._make()
        self.assertEqual(r["latency"]["median"], 10.0)
        self.assertEqual(r["latency"]["count"], 3)
        self.assertEqual(r["download"]["speed_mbps"], 100.0)
        self.assertEqual(r["download"]["sizes"], [{"label": "10kB"}])
        self.assertEqual(r["upload"]["percentile"], 0.9)

    def test_missing_latency_stats(self):
        r = self._make(latency_results={"attempts": 3, "failures": 3})
        self.assertEqual(r["latency"]["count"], 0)
        self.assertEqual(r["latency"]["samples"], [])

    def test_no_client(self):
        self.assertNotIn("client", self._make(client_info=None))

    def test_serialisable(self):
        json.dumps(self._make())


class TestFormatSizeLine(unittest.TestCase):
    def test_speed(self):
        self.assertEqual(format_size_line("10kB", 1.76), "     10kB speed: 1.76 Mbps")

    def test_no_samples(self):
        self.assertEqual(format_size_line("100MB", None), "    100MB speed: n/a")


class TestFormatTextResult(unittest.TestCase):
    def test_contents(self):
        text = format_text_result(
            latency_ms=15.0,
            download_mbps=95.5,
            upload_mbps=40.25,
            size_lines=["     10kB speed: 1.76 Mbps"],
            server_location="Frankfurt (FRA)",
            ip="1.2.3.4",
        )
        self.assertIn("Latency: 15.00 ms", text)
        self.assertIn("Download speed: 95.50 Mbps", text)
        self.assertIn("Upload speed: 40.25 Mbps", text)
        self.assertIn("Server location: Frankfurt (FRA)", text)
        self.assertIn("Your IP: 1.2.3.4", text)
        self.assertIn("10kB speed: 1.76 Mbps", text)

    def test_size_lines_before_download(self):
        text = format_text_result(10.0, 1.0, 1.0, size_lines=["SIZE"])
        self.assertLess(text.index("SIZE"), text.index("Download speed"))

    def test_optional_fields_omitted(self):
        text = format_text_result(10.0, 1.0, 1.0)
        self.assertNotIn("Server location", text)
        self.assertNotIn("Your IP", text)


if __name__ == "__main__":
    unittest.main()
