"""
Rich-based terminal dashboard for speedtest results.

All formatting helpers live in ``cfspeed.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from cfspeed.stats import format_latency, format_speed

console = Console()


# ---------------------------------------------------------------------------
# Histogram helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def create_histogram(values: List[float]) -> str:
    """Return a single-line Unicode bar-chart, one bar per value."""
    if not values:
        return "No data"

    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    top = len(_BARS) - 1
    return "".join(_BARS[min(int((v - lo) / span * top), top)] for v in values)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]cfspeed[/bold cyan]\n"
            "[dim]Latency and throughput against speed.cloudflare.com[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_client_info(ip: str, loc: str, server_location: str) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("Server location:", server_location or "unknown")
    table.add_row("Your IP:", f"{ip} ({loc})" if loc else ip)
    console.print(Panel(table, title="[bold]Connection[/bold]", border_style="blue"))


def print_latency_details(result) -> None:  # noqa: ANN001 (LatencyResult)
    """Print latency statistics and a histogram."""
    stats = result.stats
    if stats is None or not stats.samples:
        console.print("[yellow]No latency samples collected[/yellow]")
        return

    table = Table(title="Latency Details", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Min", format_latency(stats.min))
    table.add_row("Max", format_latency(stats.max))
    table.add_row("Average", format_latency(stats.average))
    table.add_row("Median", format_latency(stats.median))
    table.add_row("Jitter", format_latency(stats.jitter))
    table.add_row("Samples", f"{stats.count}/{result.attempts}")
    console.print(table)

    console.print(
        Panel(
            f"[magenta]{create_histogram(stats.samples)}[/magenta]\n"
            f"[dim]Min: {stats.min:.1f} ms  Max: {stats.max:.1f} ms[/dim]",
            title="Latency Histogram",
        )
    )


def print_size_result(size) -> None:  # noqa: ANN001 (SizeResult)
    """One line per payload size: ``   10kB speed: 1.76 Mbps``."""
    m = size.median_mbps
    speed = f"[yellow]{format_speed(m)}[/yellow]" if m is not None else "[red]failed[/red]"
    failures = f" [dim]({size.failures} failed)[/dim]" if size.failures else ""
    console.print(f"[bold]{size.step.name:>9} speed:[/bold] {speed}{failures}")


def print_speed_result(result, title: str, color: str = "green") -> None:  # noqa: ANN001
    """Print a download or upload stage summary."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Size", style="bold")
    table.add_column("Probes", justify="right")
    table.add_column("Median", justify="right")

    for size in result.sizes:
        m = size.median_mbps
        table.add_row(
            size.step.name,
            f"{len(size.samples)}/{size.step.iterations}",
            format_speed(m) if m is not None else "n/a",
        )
    table.add_row(
        f"p{result.percentile * 100:.0f}",
        str(len(result.samples)),
        f"[bold {color}]{format_speed(result.speed_mbps)}[/bold {color}]",
    )
    console.print(table)

    if result.samples:
        console.print(
            Panel(
                f"[{color}]{create_histogram(result.samples)}[/{color}]\n"
                f"[dim]Min: {min(result.samples):.1f} Mbps  "
                f"Max: {max(result.samples):.1f} Mbps[/dim]",
                title="Throughput per Probe",
            )
        )


def print_final_results(
    latency_ms: float,
    download_mbps: float,
    upload_mbps: float,
    server_location: str = "",
) -> None:
    server_line = (
        f"[bold cyan]Server:[/bold cyan] {server_location}\n\n" if server_location else ""
    )
    console.print()
    console.print(
        Panel.fit(
            f"{server_line}"
            f"[bold white]   Latency:[/bold white]  [bold magenta]{format_latency(latency_ms)}[/bold magenta]\n"
            f"[bold white]  Download:[/bold white]  [bold green]{format_speed(download_mbps)}[/bold green]\n"
            f"[bold white]    Upload:[/bold white]  [bold green]{format_speed(upload_mbps)}[/bold green]",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )
    console.print()


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar while a stage's probes run."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task_id = None
        self._running = False

    def start(self, description: str, total: Optional[int] = None) -> None:
        self.progress.start()
        self._running = True
        self._task_id = self.progress.add_task(description, total=total)

    def update(self, done: int, total: Optional[int] = None) -> None:
        if self._task_id is None:
            return
        self.progress.update(self._task_id, completed=done, total=total)

    def stop(self) -> None:
        if not self._running:
            return
        if self._task_id is not None:
            self.progress.remove_task(self._task_id)
            self._task_id = None
        self.progress.stop()
        self._running = False
