"""UI layer -- Rich console output and JSON formatter."""

from .dashboard import (
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
from .output import create_result_json

__all__ = [
    "ProgressDisplay",
    "console",
    "create_result_json",
    "print_client_info",
    "print_disabled",
    "print_header",
    "print_latency",
    "print_server",
    "print_servers_json",
    "print_speed_result",
    "print_summary",
]
