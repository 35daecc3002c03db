"""
Output formatting -- JSON result document for ``--json``.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def create_result_json(
    client_info: Dict[str, Any],
    runs: List[Dict[str, Any]],
    binary: bool = False,
) -> Dict[str, Any]:
    """Build the JSON document for a whole run.

    Each entry of *runs* holds ``server``, ``latency``, ``download`` and
    ``upload`` dicts (the latter three may be ``None`` when skipped).
    """
    download_speeds = [
        r["download"]["speed_mbps"] for r in runs if r.get("download")
    ]

    result: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "client": client_info,
        "units": "binary" if binary else "decimal",
        "servers": [_server_entry(r) for r in runs],
    }

    if download_speeds:
        result["download_mbps_mean"] = round(sum(download_speeds) / len(download_speeds), 2)

    return result


def _server_entry(run: Dict[str, Any]) -> Dict[str, Any]:
    latency: Optional[Dict[str, Any]] = run.get("latency")
    return {
        "server": run.get("server", {}),
        "ip": run.get("ip", ""),
        "ping_ms": latency.get("rtt_ms", 0) if latency else None,
        "download": run.get("download"),
        "upload": run.get("upload"),
    }
