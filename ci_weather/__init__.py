"""
CI weather dashboard data builder.

Turns GitHub Actions job records + raw job logs into the `data.json` a static
dashboard renders:
- per configured test: latest status, 10-day "weather" timeline, failing TAP tests
- a cross-run index of failing test names (30-day window), carried between runs

Public API is re-exported from:
- `ci_weather.log_parser` for TAP report parsing
- `ci_weather.weather` for the per-test timeline
- `ci_weather.failure_index` for the global failure index
- `ci_weather.assembler` for the end-to-end pipeline
"""

from .assembler import build_dashboard  # noqa: F401
from .config import load_config  # noqa: F401
from .failure_index import FailedTestsIndex  # noqa: F401
from .log_parser import LogParser, parse_report_text  # noqa: F401
from .timefmt import format_duration, format_relative_time  # noqa: F401
from .weather import build_weather_history  # noqa: F401

__all__ = [
    "FailedTestsIndex",
    "LogParser",
    "build_dashboard",
    "build_weather_history",
    "format_duration",
    "format_relative_time",
    "load_config",
    "parse_report_text",
]
