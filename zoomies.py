#!/usr/bin/env python3
"""
zoomies -- network speed measurement against fast.com servers.

Usage::

    python zoomies.py                       # test the lowest-RTT server
    python zoomies.py --count 3             # test the three best servers
    python zoomies.py --no-icmp             # rank servers with HTTP probes
    python zoomies.py --no-upload           # skip the upload test
    python zoomies.py -d 10 -n 1048576      # 10 s tests, 1 MiB ranged GETs
    python zoomies.py --binary              # Mibit/s instead of Mbps
    python zoomies.py --json                # JSON to stdout
    python zoomies.py --list-servers        # print candidates and exit
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from rich.logging import RichHandler

from client.api import FastAPI, generate_payload, resolve_ipv4
from client.config import TestConfig, load_config, validate_server_count
from client.constants import MAX_SERVER_COUNT
from client.download import DownloadTester
from client.errors import ZoomiesError
from client.latency import get_prober
from client.ranking import rank_servers
from client.upload import UploadTester
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_client_info,
    print_disabled,
    print_header,
    print_latency,
    print_server,
    print_servers_json,
    print_speed_result,
    print_summary,
)
from ui.output import create_result_json

logger = logging.getLogger("zoomies")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    """Errors are always shown; everything else only with ``--verbose``."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # Keep third-party chatter out of --verbose output
    for name in ("asyncio", "scapy.runtime"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Option resolution
# ---------------------------------------------------------------------------

def _resolve_options(
    args: argparse.Namespace,
    file_config: Dict[str, Any],
) -> Tuple[TestConfig, int, bool]:
    """Merge flags over the config file and validate.

    Returns ``(config, server_count, use_icmp)``; raises ``ValidationError``.
    """
    def pick(flag: Any, key: str) -> Any:
        return flag if flag is not None else file_config[key]

    config = TestConfig(
        concurrency=pick(args.requests, "concurrency"),
        duration=float(pick(args.duration, "duration")),
        payload_size=pick(args.payload, "payload_size"),
        chunk_size=pick(args.chunk, "chunk_size"),
        ping_count=pick(args.pcount, "ping_count"),
        binary=bool(pick(args.binary, "binary")),
    )
    count = pick(args.count, "count")

    validate_server_count(count)
    config.validate()

    return config, count, bool(pick(args.icmp, "icmp"))


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_zoomies(
    config: TestConfig,
    *,
    token: str = "",
    count: int = 1,
    use_icmp: bool = True,
    run_download: bool = True,
    run_upload: bool = True,
    json_output: bool = False,
    list_servers: bool = False,
) -> Optional[dict]:
    """Rank the candidates and test each selected server in turn."""

    show_ui = not json_output

    async with FastAPI() as api:

        # -- Candidates -----------------------------------------------------
        if show_ui and not list_servers:
            print_header()
            console.print("[dim]Fetching server list...[/dim]")

        candidates, client_info = await api.fetch_targets(token, url_count=MAX_SERVER_COUNT)

    if list_servers:
        if json_output:
            print(json.dumps([s.to_dict() for s in candidates], indent=2, ensure_ascii=False))
        else:
            print_servers_json(candidates)
        return None

    if show_ui:
        print_client_info(ip=client_info.ip, isp=client_info.isp, location=client_info.location)

    # -- Ranking ------------------------------------------------------------
    prober = get_prober(use_icmp)
    servers = await rank_servers(candidates, count, prober.probe)

    payload: Optional[bytes] = None
    runs: List[Dict[str, Any]] = []
    download_speeds: List[float] = []

    for server in servers:
        run: Dict[str, Any] = {"server": server.to_dict(), "latency": None, "download": None, "upload": None}
        runs.append(run)

        run["ip"] = await resolve_ipv4(server.hostname)
        if show_ui:
            print_server(run["ip"], server.location)

        # -- Latency --------------------------------------------------------
        try:
            latency = await prober.measure(server, config.ping_count)
        except ZoomiesError as exc:
            logger.error("latency test failed for %s: %s", server.name, exc)
        else:
            run["latency"] = latency.to_dict()
            if show_ui:
                print_latency(latency.rtt_ms)

        # -- Download -------------------------------------------------------
        if run_download:
            target = dataclasses.replace(server)
            target.set_chunk_size(config.chunk_size)

            dl_tester = DownloadTester(duration_seconds=config.duration)
            dl_result = await _run_tester(dl_tester, target, config, "Download", show_ui)
            run["download"] = dl_result.to_dict()
            download_speeds.append(dl_result.speed_mbps)
        elif show_ui:
            print_disabled("Download")

        # -- Upload ---------------------------------------------------------
        if run_upload:
            if payload is None:
                payload = generate_payload(config.payload_size)

            ul_tester = UploadTester(payload, duration_seconds=config.duration)
            ul_result = await _run_tester(ul_tester, server, config, "Upload", show_ui)
            run["upload"] = ul_result.to_dict()
        elif show_ui:
            print_disabled("Upload")

    if show_ui and len(download_speeds) > 1:
        print_summary(download_speeds)

    result_json = create_result_json(client_info.to_dict(), runs, binary=config.binary)
    if json_output:
        print(json.dumps(result_json, indent=2))

    return result_json


async def _run_tester(tester, server, config: TestConfig, label: str, show_ui: bool):  # noqa: ANN001
    """Run *tester* with a progress bar when the UI is on."""
    progress = None
    if show_ui:
        progress = ProgressDisplay(binary=config.binary)
        progress.start(f"Running the {label.lower()} test")
        tester.on_progress = progress.update

    try:
        result = await tester.test(server, connections=config.concurrency)
    finally:
        if progress:
            progress.stop()

    if show_ui:
        print_speed_result(result, label, config.binary)
    return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zoomies",
        description="zoomies is a network speed measurement tool",
    )
    # Server selection
    parser.add_argument("--token", "-t", type=str, default="", help="User provided API endpoint access token")
    parser.add_argument("--count", "-c", type=int, default=None, metavar="N", help="Number of servers to perform testing on (1-5)")
    parser.add_argument("--icmp", action=argparse.BooleanOptionalAction, default=None, help="Use ICMP to determine RTT, HTTP otherwise")
    parser.add_argument("--list-servers", action="store_true", help="Print the candidate servers and exit")

    # Tests
    parser.add_argument("--download", action=argparse.BooleanOptionalAction, default=True, help="Perform the download test")
    parser.add_argument("--upload", action=argparse.BooleanOptionalAction, default=True, help="Perform the upload test")

    # Test parameters
    parser.add_argument("--chunk", "-n", type=int, default=None, metavar="BYTES", help="Size of the download chunk (1-26214400)")
    parser.add_argument("--payload", type=int, default=None, metavar="BYTES", help="Size of the upload payload (1-26214400)")
    parser.add_argument("--duration", "-d", type=float, default=None, metavar="SECS", help="Length of each throughput test (3-30 seconds)")
    parser.add_argument("--pcount", "-p", type=int, default=None, metavar="N", help="Number of pings in the latency test (1-5)")
    parser.add_argument("--requests", "-r", type=int, default=None, metavar="N", help="Number of concurrent requests (1-32)")

    # Output
    parser.add_argument("--binary", action=argparse.BooleanOptionalAction, default=None, help="Use binary unit prefixes (KiB, Mibit/s)")
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    _configure_logging(args.verbose)

    # Validate
    try:
        config, count, use_icmp = _resolve_options(args, load_config())
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    try:
        asyncio.run(
            run_zoomies(
                config,
                token=args.token,
                count=count,
                use_icmp=use_icmp,
                run_download=args.download,
                run_upload=args.upload,
                json_output=args.json,
                list_servers=args.list_servers,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except (ZoomiesError, aiohttp.ClientError, OSError) as exc:
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
