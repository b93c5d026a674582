# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Compose parser + weather + failure index into the final `data.json` payload.

    build_dashboard(config, jobs, logs, previous)
      -> {"lastRefresh": ..., "sections": [...], "failedTestsIndex": {...}}

Test records are rebuilt from scratch on every run; the previous snapshot is only
read (weather backfill + index seed), never mutated.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .failure_index import FailedTestsIndex
from .jobs import (
    failed_step,
    first_with_conclusion,
    job_id_str,
    job_run_id,
    latest_status,
    matching_jobs,
    retried_count,
)
from .log_parser import LogParser
from .timefmt import NEVER, NOT_AVAILABLE, format_duration, format_relative_time, to_iso, utc_now
from .types import DashboardConfig, DayStatus, JobConclusion, JobEntry, SectionConfig, TestStatus, WeatherDay
from .weather import build_weather_history

logger = logging.getLogger(__name__)

MAX_ERROR_FAILURES: int = 20
VIEW_FULL_LOG_MESSAGE = "View full log on GitHub for details"


class CachedSnapshot:
    """Read-only view over the previous `data.json` (or nothing on the first run)."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data = data if isinstance(data, Mapping) else {}

    def weather_history(self, section_id: str, test_id: str) -> Optional[List[Any]]:
        for section in self._data.get("sections") or []:
            if not isinstance(section, dict) or section.get("id") != section_id:
                continue
            for test in section.get("tests") or []:
                if isinstance(test, dict) and test.get("id") == test_id:
                    history = test.get("weatherHistory")
                    return history if isinstance(history, list) else None
            return None
        return None

    def failed_tests_index(self) -> Any:
        return self._data.get("failedTestsIndex")


def failed_tests_in_weather(history: Sequence[WeatherDay]) -> List[Dict[str, Any]]:
    """Per failing test name within this test's own window: count + the days it failed."""
    by_name: Dict[str, Dict[str, Any]] = {}
    for day in history:
        if day.failure_details is None:
            continue
        for f in day.failure_details.failures:
            row = by_name.get(f.name)
            if row is None:
                row = {"name": f.name, "count": 0, "dates": []}
                by_name[f.name] = row
            row["count"] += 1
            row["dates"].append(day.date)
    return sorted(by_name.values(), key=lambda r: r["count"], reverse=True)


def build_error_details(job: Dict[str, Any], parser: LogParser) -> Dict[str, Any]:
    """Error panel for a failed test: parsed TAP failures, or a pointer to the full log."""
    step = failed_step(job)
    job_id = job_id_str(job)
    report = parser.parse(job_id) if job_id is not None else None
    if report is None or not report.failures:
        return {"step": step, "output": VIEW_FULL_LOG_MESSAGE}
    return {
        "step": step,
        "testResults": report.stats.to_dict(),
        "failures": [f.to_dict() for f in report.failures[:MAX_ERROR_FAILURES]],
        "output": "\n".join(f.to_tap_line() for f in report.failures),
    }


def build_test_record(
    entry: JobEntry,
    section_id: str,
    all_jobs: Sequence[Dict[str, Any]],
    *,
    parser: LogParser,
    cache: CachedSnapshot,
    index: FailedTestsIndex,
    now: datetime,
) -> Dict[str, Any]:
    display_name = entry.display_name
    test_id = entry.test_id

    jobs = matching_jobs(all_jobs, entry.name)
    latest = jobs[0] if jobs else None
    logger.info(f'Job "{display_name}": found {len(jobs)} matching jobs')
    if latest is not None:
        logger.info(f"  Latest: {latest.get('name')} - {latest.get('conclusion')}")

    status = latest_status(latest)
    history = build_weather_history(
        jobs,
        parser=parser,
        display_name=display_name,
        cached_history=cache.weather_history(section_id, test_id),
        index=index,
        now=now,
    )

    last_failure = first_with_conclusion(jobs, JobConclusion.FAILURE)
    last_success = first_with_conclusion(jobs, JobConclusion.SUCCESS)

    error = None
    if status == TestStatus.FAILED and job_id_str(latest) is not None:
        error = build_error_details(latest, parser)

    return {
        "id": test_id,
        "name": display_name,
        "fullName": entry.name,
        "status": status.value,
        "duration": format_duration(latest.get("started_at"), latest.get("completed_at")) if latest else NOT_AVAILABLE,
        "lastFailure": _relative(last_failure, now),
        "lastSuccess": _relative(last_success, now),
        "weatherHistory": [d.to_dict() for d in history],
        "failureCount": sum(1 for d in history if d.status == DayStatus.FAILED),
        "failedTestsInWeather": failed_tests_in_weather(history),
        "retried": retried_count(latest),
        "setupRetry": False,
        "runId": job_run_id(latest),
        "jobId": job_id_str(latest),
        "error": error,
    }


def _relative(job: Optional[Dict[str, Any]], now: datetime) -> str:
    if job is None:
        return NEVER
    return format_relative_time(job.get("started_at") or job.get("created_at"), now=now)


def build_section(
    section: SectionConfig,
    all_jobs: Sequence[Dict[str, Any]],
    *,
    parser: LogParser,
    cache: CachedSnapshot,
    index: FailedTestsIndex,
    now: datetime,
) -> Dict[str, Any]:
    tests = [
        build_test_record(entry, section.id, all_jobs, parser=parser, cache=cache, index=index, now=now)
        for entry in section.jobs
    ]
    return {
        "id": section.id,
        "name": section.name,
        "description": section.description,
        "maintainers": list(section.maintainers),
        "tests": tests,
    }


def build_dashboard(
    config: DashboardConfig,
    jobs: Sequence[Dict[str, Any]],
    logs: Mapping[str, str],
    previous: Optional[Mapping[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Run the whole single-pass pipeline and return the data.json payload."""
    now = now or utc_now()
    parser = LogParser(logs)
    cache = CachedSnapshot(previous)
    index = FailedTestsIndex.from_snapshot(cache.failed_tests_index())
    if len(index):
        logger.info(f"Seeded failure index with {len(index)} tracked failed tests")

    sections = [
        build_section(section, jobs, parser=parser, cache=cache, index=index, now=now)
        for section in config.sections
    ]
    index.finalize(now)

    return {
        "lastRefresh": to_iso(now),
        "sections": sections,
        "failedTestsIndex": index.to_dict(),
    }
