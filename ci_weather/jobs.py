# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Helpers over raw GitHub Actions job dicts (as returned by `/actions/runs/{id}/jobs`).

Example job dict (partial):
    {
      "id": 59522167110,
      "run_id": 20732129035,
      "workflow_run_id": "20732129035",
      "name": "run-k8s-tests (nvidia-gpu)",
      "status": "completed",
      "conclusion": "failure",
      "started_at": "2025-12-24T09:06:10Z",
      "completed_at": "2025-12-24T09:36:13Z",
      "run_attempt": 2,
      "steps": [{"name": "Run tests", "conclusion": "failure"}]
    }
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .timefmt import job_start_time
from .types import RUNNING_JOB_STATUSES, JobConclusion, TestStatus

UNKNOWN_STEP = "Unknown step"
DEFAULT_FAILED_STEP = "Run tests"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def job_id_str(job: Optional[Dict[str, Any]]) -> Optional[str]:
    if not job or job.get("id") in (None, ""):
        return None
    return str(job["id"])


def job_run_id(job: Optional[Dict[str, Any]]) -> Optional[str]:
    """Workflow run id of a job (`workflow_run_id` wins over `run_id`)."""
    if not job:
        return None
    rid = job.get("workflow_run_id") or job.get("run_id")
    if rid in (None, ""):
        return None
    return str(rid)


def matching_jobs(all_jobs: Sequence[Dict[str, Any]], job_name: str) -> List[Dict[str, Any]]:
    """Jobs whose name equals `job_name` exactly, newest start (or creation) first.

    Jobs without a parseable timestamp sort last; ties keep input order.
    """
    matches = [j for j in all_jobs if (j.get("name") or "") == job_name]
    return sorted(matches, key=lambda j: job_start_time(j) or _OLDEST, reverse=True)


def latest_status(job: Optional[Dict[str, Any]]) -> TestStatus:
    if not job:
        return TestStatus.NOT_RUN
    if str(job.get("status") or "") in RUNNING_JOB_STATUSES:
        return TestStatus.RUNNING
    conclusion = job.get("conclusion")
    if conclusion == JobConclusion.SUCCESS.value:
        return TestStatus.PASSED
    if conclusion == JobConclusion.FAILURE.value:
        return TestStatus.FAILED
    # cancelled, skipped, or not concluded yet
    return TestStatus.NOT_RUN


def failed_step(job: Optional[Dict[str, Any]]) -> str:
    """Name of the first failed step; "Run tests" if none failed; "Unknown step" without steps."""
    if not job or not job.get("steps"):
        return UNKNOWN_STEP
    for step in job["steps"]:
        if isinstance(step, dict) and step.get("conclusion") == JobConclusion.FAILURE.value:
            return str(step.get("name") or DEFAULT_FAILED_STEP)
    return DEFAULT_FAILED_STEP


def retried_count(job: Optional[Dict[str, Any]]) -> int:
    if not job:
        return 0
    try:
        attempt = int(job.get("run_attempt") or 0)
    except (TypeError, ValueError):
        return 0
    return attempt - 1 if attempt > 1 else 0


def first_with_conclusion(jobs: Sequence[Dict[str, Any]], conclusion: JobConclusion) -> Optional[Dict[str, Any]]:
    return next((j for j in jobs if j.get("conclusion") == conclusion.value), None)
