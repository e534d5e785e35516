"""UI layer -- Rich dashboard and output formatters."""

from .dashboard import (
    ProgressDisplay,
    console,
    create_histogram,
    print_client_info,
    print_final_results,
    print_header,
    print_latency_details,
    print_size_result,
    print_speed_result,
)
from .output import (
    create_result_json,
    format_size_line,
    format_text_result,
)

__all__ = [
    "ProgressDisplay",
    "console",
    "create_histogram",
    "create_result_json",
    "format_size_line",
    "format_text_result",
    "print_client_info",
    "print_final_results",
    "print_header",
    "print_latency_details",
    "print_size_result",
    "print_speed_result",
]
