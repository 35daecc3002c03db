"""
Rich-based terminal output for zoomies.

All formatting helpers live in ``client.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

import json
from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from client.stats import (
    calculate_mean,
    calculate_stddev,
    format_bytes,
    format_latency,
    format_rate,
    format_samples,
)

console = Console()

_CHECK = "[green]✓[/green]"
_UNCHECKED = "[dim]✗[/dim]"


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]zoomies[/bold cyan]\n"
            "[dim]network speed measurement against fast.com servers[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_client_info(ip: str, isp: str, location: str = "") -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("IP Address:", ip)
    table.add_row("ISP:", isp)
    if location:
        table.add_row("Location:", location)
    console.print(Panel(table, title="[bold]Client Info[/bold]", border_style="blue"))


def print_server(ip: str, location: str) -> None:
    console.print(f"\n[bold]Server:[/bold] {ip} ({location})")


def print_latency(rtt_ms: float) -> None:
    console.print(f" {_CHECK}  Ping: {format_latency(rtt_ms)}")


def print_speed_result(result, label: str, binary: bool = False) -> None:  # noqa: ANN001 (ThroughputResult)
    speed = format_rate(result.speed_bps, binary)
    consumed = format_bytes(result.bytes_total, binary)
    line = f" {_CHECK}  {label} speed: [bold]{speed}[/bold] ({consumed})"
    if result.errors:
        line += f" [yellow]{result.errors} failed transfers[/yellow]"
    console.print(line)


def print_disabled(label: str) -> None:
    console.print(f" {_UNCHECKED}  {label} test is disabled")


def print_summary(speeds: List[float]) -> None:
    """Mean and standard deviation of per-server speeds in Mbps."""
    if not speeds:
        return
    avg = calculate_mean(speeds)
    std_dev = calculate_stddev(speeds, avg)
    console.print(f"\nAverage Speed: {avg:.2f} Mbps - {format_samples(speeds)}")
    console.print(f"Standard Deviation: {std_dev:.2f} Mbps\n")


def print_servers_json(servers: list) -> None:
    """Pretty print the candidate list as JSON."""
    console.print_json(json.dumps([s.to_dict() for s in servers], ensure_ascii=False))


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar during download / upload tests."""

    def __init__(self, binary: bool = False) -> None:
        self.binary = binary
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task_id = None

    def start(self, description: str) -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=100, speed="...")

    def update(self, progress: float, speed_bps: float = 0) -> None:
        if self._task_id is None:
            return
        speed_str = format_rate(speed_bps, self.binary) if speed_bps > 0 else "..."
        self.progress.update(self._task_id, completed=progress * 100, speed=speed_str)

    def stop(self) -> None:
        self.progress.stop()
