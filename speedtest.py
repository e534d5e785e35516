#!/usr/bin/env python3
"""
cfspeed CLI -- latency, download and upload against speed.cloudflare.com.

Usage::

    python speedtest.py                     # rich dashboard
    python speedtest.py --simple            # plain text
    python speedtest.py --json              # JSON to stdout
    python speedtest.py --latency-count 50  # more latency probes
    python speedtest.py --percentile 75     # headline quantile
    python speedtest.py -v                  # debug logging to stderr
"""
from __future__ import annotations

import argparse
import asyncio
import functools
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import aiohttp
from rich.console import Console
from rich.logging import RichHandler

from cfspeed.api import ClientInfo, CloudflareAPI
from cfspeed.config import RunSettings, config_path, load_config
from cfspeed.constants import (
    MAX_LATENCY_COUNT,
    MAX_TIMEOUT,
    MIN_LATENCY_COUNT,
    MIN_TIMEOUT,
)
from cfspeed.errors import SpeedtestError
from cfspeed.runner import SpeedTest, SpeedTestResult, run_speedtest
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_client_info,
    print_final_results,
    print_header,
    print_latency_details,
    print_size_result,
    print_speed_result,
)
from ui.output import create_result_json, format_size_line, format_text_result

logger = logging.getLogger("cfspeed")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(latency_count: int, percentile: float, timeout: float) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_LATENCY_COUNT <= latency_count <= MAX_LATENCY_COUNT:
        raise ValueError(
            f"Latency count must be between {MIN_LATENCY_COUNT} and {MAX_LATENCY_COUNT}"
        )
    if not 0 <= percentile <= 100:
        raise ValueError("Percentile must be between 0 and 100")
    if not MIN_TIMEOUT <= timeout <= MAX_TIMEOUT:
        raise ValueError(f"Timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} s")


def _setup_logging(verbose: bool) -> None:
    # stderr so that --json output on stdout stays parseable
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
    )


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def _fetch_client_info(settings: RunSettings) -> Optional[ClientInfo]:
    """Edge location and client address; the test runs without them."""
    try:
        async with CloudflareAPI(settings.host, scheme=settings.scheme) as api:
            await api.fetch_locations()
            return await api.fetch_client_info()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.warning("Could not fetch connection metadata: %s", exc)
        return None


def _attach_dashboard(test: SpeedTest, progress: ProgressDisplay) -> None:
    """Wire the rich progress bar and per-stage panels to the runner hooks."""
    labels = {"latency": "Measuring latency", "download": "Downloading", "upload": "Uploading"}

    def _on_stage(name: str) -> None:
        console.print(f"\n[bold]Testing {name}...[/bold]")
        progress.start(labels.get(name, name))

    def _on_probe(name: str, done: int, total: int) -> None:
        progress.update(done, total)

    def _on_stage_done(name: str, result: Any) -> None:
        progress.stop()
        if name == "latency":
            print_latency_details(result)
        elif name == "download":
            print_speed_result(result, "Download Results", "green")
        else:
            print_speed_result(result, "Upload Results", "blue")

    test.on_stage = _on_stage
    test.on_probe = _on_probe
    test.on_size = print_size_result
    test.on_stage_done = _on_stage_done


async def run_cli(
    *,
    settings: RunSettings,
    json_output: bool = False,
    simple: bool = False,
    fetch_meta: bool = True,
) -> Dict[str, Any]:
    """Execute the full speedtest sequence and return a JSON-serialisable dict."""

    show_ui = not json_output and not simple

    if show_ui:
        print_header()

    # -- Connection metadata ------------------------------------------------
    client_info: Optional[ClientInfo] = None
    if fetch_meta:
        if show_ui:
            console.print("[dim]Fetching connection info...[/dim]")
        client_info = await _fetch_client_info(settings)
        if show_ui and client_info:
            print_client_info(client_info.ip, client_info.loc, client_info.server_location)

    # -- Measurement --------------------------------------------------------
    progress = ProgressDisplay()
    try:
        result: SpeedTestResult = await run_speedtest(
            settings,
            configure=functools.partial(_attach_dashboard, progress=progress) if show_ui else None,
        )
    finally:
        progress.stop()

    latency_ms = result.latency.stats.median if result.latency.stats else 0.0
    location = client_info.server_location if client_info else ""

    if show_ui:
        print_final_results(
            latency_ms=latency_ms,
            download_mbps=result.download.speed_mbps,
            upload_mbps=result.upload.speed_mbps,
            server_location=location,
        )
    elif simple:
        size_lines: List[str] = [
            format_size_line(s.step.name, s.median_mbps) for s in result.download.sizes
        ]
        print(
            format_text_result(
                latency_ms=latency_ms,
                download_mbps=result.download.speed_mbps,
                upload_mbps=result.upload.speed_mbps,
                size_lines=size_lines,
                server_location=location,
                ip=client_info.ip if client_info else "",
            )
        )

    result_json = create_result_json(
        client_info=client_info.to_dict() if client_info else None,
        latency_results=result.latency.to_dict(),
        download_results=result.download.to_dict(),
        upload_results=result.upload.to_dict(),
    )

    if json_output:
        print(json.dumps(result_json, indent=2))

    return result_json


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="cfspeed -- network speed test against speed.cloudflare.com",
        epilog=f"Defaults can be overridden in {config_path()}",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every probe to stderr")
    parser.add_argument("--no-meta", action="store_true", help="Skip the server location / client IP lookup")

    # Test parameters
    parser.add_argument("--host", type=str, metavar="HOST", help="Speed test host (default: speed.cloudflare.com)")
    parser.add_argument("--latency-count", type=int, metavar="N", help="Number of latency probes (default: 20)")
    parser.add_argument("--percentile", type=float, metavar="P", help="Headline throughput percentile, 0-100 (default: 90)")
    parser.add_argument("--timeout", type=float, metavar="SECS", help="Give up on a transfer that makes no progress for SECS seconds (default: 30)")
    parser.add_argument("--reuse-connections", action="store_true", help="Keep connections open between probes")
    return parser


def _settings_from_args(args: argparse.Namespace) -> RunSettings:
    config = load_config()
    if args.host is not None:
        config["host"] = args.host
    if args.latency_count is not None:
        config["latency_count"] = args.latency_count
    if args.percentile is not None:
        config["percentile"] = args.percentile / 100
    if args.timeout is not None:
        config["timeout"] = args.timeout
    if args.reuse_connections:
        config["reuse_connections"] = True
    return RunSettings.from_config(config)


def main() -> None:
    args = build_parser().parse_args()
    _setup_logging(args.verbose)

    try:
        settings = _settings_from_args(args)
        _validate(
            latency_count=settings.latency_count,
            percentile=settings.percentile * 100,
            timeout=settings.timeout,
        )
    except (TypeError, ValueError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    try:
        asyncio.run(
            run_cli(
                settings=settings,
                json_output=args.json,
                simple=args.simple,
                fetch_meta=not args.no_meta,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except (SpeedtestError, aiohttp.ClientError) as exc:
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
