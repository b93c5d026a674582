# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Console diagnostics for a pipeline run (informational only, never a gate)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from .types import DashboardConfig, TestStatus

logger = logging.getLogger(__name__)

ACCELERATOR_KEYWORDS = ("nvidia", "gpu", "coco", "tee")
TOP_FAILING_LIMIT = 10
TEST_NAME_PREVIEW_CHARS = 60


def unique_job_names(jobs: Sequence[Dict[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for j in jobs:
        seen.setdefault(str(j.get("name") or ""), None)
    return list(seen)


def log_inputs(config: DashboardConfig, jobs: Sequence[Dict[str, Any]]) -> None:
    names = unique_job_names(jobs)
    logger.info(f"Unique job names in data ({len(names)} total):")
    for name in names:
        lowered = name.lower()
        if any(k in lowered for k in ACCELERATOR_KEYWORDS):
            logger.info(f"  [MATCH] {name}")
        else:
            logger.debug(f"  {name}")
    logger.info(f"Configured jobs to monitor: {[j.name for j in config.configured_jobs()]}")


def section_counts(section: Dict[str, Any]) -> Dict[str, int]:
    counts = {s.value: 0 for s in TestStatus}
    for test in section.get("tests") or []:
        status = test.get("status")
        if status in counts:
            counts[status] += 1
    return counts


def log_summary(data: Dict[str, Any]) -> None:
    sections = data.get("sections") or []
    index = data.get("failedTestsIndex") or {}
    logger.info(f"Tracking {len(index)} unique failed tests")

    for section in sections:
        c = section_counts(section)
        logger.info(
            f'Section "{section.get("name")}": {c["passed"]} passed, {c["failed"]} failed, '
            f'{c["running"]} running, {c["not_run"]} not run'
        )
        for test in section.get("tests") or []:
            failing = test.get("failedTestsInWeather") or []
            if not failing:
                continue
            logger.info(f"  {test.get('name')}: {test.get('failureCount')} failures in 10 days")
            for f in failing[:3]:
                logger.info(f'    - "{f["name"]}" failed {f["count"]}x')

    top = sorted(index.items(), key=lambda kv: kv[1].get("totalCount", 0), reverse=True)[:TOP_FAILING_LIMIT]
    if top:
        logger.info("Top failing tests across all jobs (last 30 days):")
        for name, entry in top:
            short = name if len(name) <= TEST_NAME_PREVIEW_CHARS else name[:TEST_NAME_PREVIEW_CHARS] + "..."
            logger.info(f'  "{short}" - {entry.get("totalCount")}x across {entry.get("uniqueJobsAffected")} job(s)')
