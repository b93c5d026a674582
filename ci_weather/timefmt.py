# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Timestamp helpers: parsing GitHub ISO timestamps, day truncation, and the short
human strings shown on the dashboard ("2m 30s", "3h ago", "Yesterday").

All datetimes handled here are timezone-aware UTC. Bad input never raises; it
degrades to None / "N/A".
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

NOT_AVAILABLE = "N/A"
NEVER = "Never"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse `2025-12-24T09:06:10Z` (or any ISO-8601 string) into an aware UTC datetime.

    Naive values are assumed to be UTC. Returns None for empty/unparseable input.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value or "").strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # offset pushes the instant outside datetime's range
        return None


def to_iso(dt: datetime) -> str:
    """Serialize like JavaScript's `Date.toISOString()`: `2025-12-24T00:00:00.000Z`."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def day_start(dt: datetime) -> datetime:
    """Truncate to midnight UTC of the same calendar day."""
    return dt.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def same_day(a: Optional[datetime], b: Optional[datetime]) -> bool:
    if a is None or b is None:
        return False
    return a.astimezone(timezone.utc).date() == b.astimezone(timezone.utc).date()


def job_start_time(job: Dict[str, Any]) -> Optional[datetime]:
    """When a job started, falling back to when it was created (queued jobs)."""
    return parse_iso(job.get("started_at") or job.get("created_at"))


def format_duration(start: Any, end: Any) -> str:
    """`"10:00:00"` -> `"10:02:30"` gives `"2m 30s"`; missing/negative gives "N/A".

    Minutes are not rolled into hours, matching what the dashboard has always shown.
    """
    st = parse_iso(start)
    et = parse_iso(end)
    if st is None or et is None:
        return NOT_AVAILABLE
    diff_ms = int((et - st) / timedelta(milliseconds=1))
    if diff_ms < 0:
        return NOT_AVAILABLE
    minutes, rem_ms = divmod(diff_ms, 60_000)
    return f"{minutes}m {rem_ms // 1000}s"


def format_relative_time(value: Any, *, now: Optional[datetime] = None) -> str:
    """Short "how long ago" string for the test cards."""
    dt = parse_iso(value)
    if dt is None:
        return NOT_AVAILABLE
    now = now or utc_now()
    delta = now - dt
    if delta < timedelta(0):
        # Clock skew between the runner and us; a future timestamp is "now".
        delta = timedelta(0)
    days = delta.days
    if days == 0:
        hours = int(delta.total_seconds() // 3600)
        if hours == 0:
            return "Just now"
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return f"{dt.month}/{dt.day}/{dt.year}"
