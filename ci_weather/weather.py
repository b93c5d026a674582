# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Weather history: a fixed 10-day timeline (oldest first, ending today) per configured test.

Per day, the status comes from the first job in the newest-first match list whose
start (or creation) timestamp falls on that UTC calendar day. Only that one job is
attributed to the day; earlier re-runs on the same day are not shown.

Failure details for a failed day are resolved by a fallback chain:
    fresh log parse  ->  cached day from the previous data.json  ->  None
Days with no job at all reuse the cached day verbatim (stale beats a gap).

Every failure name that ends up on a failed day is forwarded to the global
FailedTestsIndex.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from .failure_index import FailedTestsIndex
from .jobs import failed_step, job_id_str, job_run_id
from .log_parser import LogParser
from .timefmt import NOT_AVAILABLE, day_start, format_duration, job_start_time, parse_iso, same_day, to_iso, utc_now
from .types import RUNNING_JOB_STATUSES, CachedDay, DayStatus, FailureReport, JobConclusion, WeatherDay

logger = logging.getLogger(__name__)

WEATHER_DAYS: int = 10


def window_days(now: Optional[datetime] = None, *, days: int = WEATHER_DAYS) -> List[datetime]:
    """Midnights (UTC) for `today-(days-1) .. today`, oldest first."""
    today = day_start(now or utc_now())
    return [today - timedelta(days=(days - 1 - i)) for i in range(days)]


def find_job_for_day(jobs: Sequence[Dict[str, Any]], day: datetime) -> Optional[Dict[str, Any]]:
    """First job (in the given order) that started on `day`'s calendar date."""
    for job in jobs:
        if same_day(job_start_time(job), day):
            return job
    return None


def index_cached_days(cached_history: Optional[Sequence[Any]]) -> Dict[date, CachedDay]:
    """Map calendar date -> cached day. Entries with a bad date are skipped; first one wins."""
    out: Dict[date, CachedDay] = {}
    for raw in cached_history or []:
        if not isinstance(raw, dict):
            continue
        when = parse_iso(raw.get("date"))
        if when is None:
            continue
        out.setdefault(when.date(), CachedDay.from_dict(raw))
    return out


def cached_failure_details(cached: Dict[date, CachedDay], day: datetime) -> Optional[FailureReport]:
    hit = cached.get(day.date())
    return hit.failure_details if hit is not None else None


def resolve_failure_details(
    parser: LogParser, job_id: Optional[str], cached: Dict[date, CachedDay], day: datetime
) -> Optional[FailureReport]:
    """Fresh parse of the job's log, else whatever the previous snapshot had for that day."""
    if job_id is not None:
        fresh = parser.parse(job_id)
        if fresh is not None:
            return fresh
    return cached_failure_details(cached, day)


def _day_status_for_job(job: Dict[str, Any]) -> DayStatus:
    if str(job.get("status") or "") in RUNNING_JOB_STATUSES:
        return DayStatus.RUNNING
    conclusion = job.get("conclusion")
    if conclusion == JobConclusion.SUCCESS.value:
        return DayStatus.PASSED
    if conclusion == JobConclusion.FAILURE.value:
        return DayStatus.FAILED
    return DayStatus.NONE


def build_weather_day(
    day: datetime,
    jobs: Sequence[Dict[str, Any]],
    *,
    parser: LogParser,
    cached: Dict[date, CachedDay],
    display_name: str,
    index: Optional[FailedTestsIndex] = None,
) -> WeatherDay:
    day_iso = to_iso(day)
    job = find_job_for_day(jobs, day)

    if job is None:
        hit = cached.get(day.date())
        if hit is None:
            return WeatherDay(date=day_iso)
        return WeatherDay(
            date=day_iso,
            status=hit.status,
            failure_step=failed_step(None) if hit.status == DayStatus.FAILED else None,
            failure_details=hit.failure_details,
        )

    status = _day_status_for_job(job)
    job_id = job_id_str(job)
    run_id = job_run_id(job)
    details: Optional[FailureReport] = None

    if status == DayStatus.FAILED:
        details = resolve_failure_details(parser, job_id, cached, day)
        if details is not None and index is not None and job_id is not None:
            for f in details.failures:
                index.record(f.name, day_iso, display_name, job_id, run_id)

    duration = format_duration(job.get("started_at"), job.get("completed_at"))
    return WeatherDay(
        date=day_iso,
        status=status,
        run_id=run_id,
        job_id=job_id,
        duration=None if duration == NOT_AVAILABLE else duration,
        failure_step=failed_step(job) if status == DayStatus.FAILED else None,
        failure_details=details,
    )


def build_weather_history(
    jobs: Sequence[Dict[str, Any]],
    *,
    parser: LogParser,
    display_name: str,
    cached_history: Optional[Sequence[Any]] = None,
    index: Optional[FailedTestsIndex] = None,
    now: Optional[datetime] = None,
    days: int = WEATHER_DAYS,
) -> List[WeatherDay]:
    """Build exactly `days` WeatherDay entries, oldest first.

    Args:
        jobs: jobs matching this test, sorted newest-first (see `jobs.matching_jobs`)
        parser: log parser over this run's job logs
        display_name: test display name, recorded as `jobName` in the index
        cached_history: `weatherHistory` list from the previous snapshot, if any
        index: global failure index to feed (optional)
        now: reference time (UTC); defaults to the current time
    """
    cached = index_cached_days(cached_history)
    history = [
        build_weather_day(day, jobs, parser=parser, cached=cached, display_name=display_name, index=index)
        for day in window_days(now, days=days)
    ]
    logger.debug(
        f"{display_name}: weather "
        + "".join({"passed": "+", "failed": "x", "running": "~"}.get(d.status.value, ".") for d in history)
    )
    return history
