# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared enums/types for the ci_weather pipeline.

Everything that ends up in `data.json` has a `to_dict()` producing the camelCase
shape the dashboard front-end reads. Types that are also *read back* from the
previous snapshot (cache) have a lenient `from_dict()`.

This module MUST NOT import other ci_weather modules (except `regexes`-style leaf
modules) to avoid cycles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class JobStatus(str, Enum):
    """Raw GitHub Actions job `status` values we care about."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    PENDING = "pending"
    REQUESTED = "requested"


class JobConclusion(str, Enum):
    """Raw GitHub Actions job `conclusion` values."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class TestStatus(str, Enum):
    """Normalized status of a configured test (latest matching job)."""

    __test__ = False  # prevent pytest collection

    PASSED = "passed"
    FAILED = "failed"
    RUNNING = "running"
    NOT_RUN = "not_run"


class DayStatus(str, Enum):
    """Status of a single weather day."""

    NONE = "none"
    PASSED = "passed"
    FAILED = "failed"
    RUNNING = "running"


RUNNING_JOB_STATUSES = frozenset(
    {
        JobStatus.IN_PROGRESS.value,
        JobStatus.QUEUED.value,
        JobStatus.WAITING.value,
        JobStatus.PENDING.value,
        JobStatus.REQUESTED.value,
    }
)

_SLUG_RE = re.compile(r"[^a-zA-Z0-9]")


def slugify(display_name: str) -> str:
    """`"GPU Suite (nvidia)"` -> `"gpu-suite--nvidia-"` (one hyphen per replaced char)."""
    return _SLUG_RE.sub("-", str(display_name or "")).lower()


def _int_or_zero(v: Any) -> int:
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return 0


# ======================================================================================
# Failure reports (log parser output)
# ======================================================================================


@dataclass(frozen=True)
class Failure:
    """One `not ok` TAP line that was not a skip/todo."""

    number: int
    name: str
    comment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"number": self.number, "name": self.name, "comment": self.comment}

    def to_tap_line(self) -> str:
        suffix = f" # {self.comment}" if self.comment else ""
        return f"not ok {self.number} - {self.name}{suffix}"

    @classmethod
    def from_dict(cls, d: Any) -> Optional["Failure"]:
        if not isinstance(d, dict) or not d.get("name"):
            return None
        return cls(number=_int_or_zero(d.get("number")), name=str(d["name"]), comment=str(d.get("comment") or ""))


@dataclass
class TestStats:
    __test__ = False  # prevent pytest collection

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "passed": self.passed, "failed": self.failed, "skipped": self.skipped}

    @classmethod
    def from_dict(cls, d: Any) -> "TestStats":
        if not isinstance(d, dict):
            return cls()
        return cls(
            total=_int_or_zero(d.get("total")),
            passed=_int_or_zero(d.get("passed")),
            failed=_int_or_zero(d.get("failed")),
            skipped=_int_or_zero(d.get("skipped")),
        )


@dataclass
class FailureReport:
    """Structured result of parsing one job's log.

    Invariant: `stats.failed == len(failures)` once skip/todo lines are reclassified.
    An empty report (no tests, no failures) is never constructed by the parser; it
    returns None instead so callers can tell "no data" from "zero failures".
    """

    failures: List[Failure] = field(default_factory=list)
    stats: TestStats = field(default_factory=TestStats)

    def to_dict(self) -> Dict[str, Any]:
        return {"failures": [f.to_dict() for f in self.failures], "stats": self.stats.to_dict()}

    @classmethod
    def from_dict(cls, d: Any) -> Optional["FailureReport"]:
        """Rebuild a cached `failureDetails` value; None for anything unusable."""
        if not isinstance(d, dict):
            return None
        raw_failures = d.get("failures")
        if not isinstance(raw_failures, list):
            return None
        failures = [f for f in (Failure.from_dict(x) for x in raw_failures) if f is not None]
        return cls(failures=failures, stats=TestStats.from_dict(d.get("stats")))


# ======================================================================================
# Weather
# ======================================================================================


@dataclass
class WeatherDay:
    date: str
    status: DayStatus = DayStatus.NONE
    run_id: Optional[str] = None
    job_id: Optional[str] = None
    duration: Optional[str] = None
    failure_step: Optional[str] = None
    failure_details: Optional[FailureReport] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "status": DayStatus(self.status).value,
            "runId": self.run_id,
            "jobId": self.job_id,
            "duration": self.duration,
            "failureStep": self.failure_step,
            "failureDetails": self.failure_details.to_dict() if self.failure_details is not None else None,
        }


@dataclass(frozen=True)
class CachedDay:
    """The subset of a previously written weather day we are willing to reuse."""

    status: DayStatus
    failure_details: Optional[FailureReport] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CachedDay":
        try:
            status = DayStatus(str(d.get("status") or DayStatus.NONE.value))
        except ValueError:
            status = DayStatus.NONE
        return cls(status=status, failure_details=FailureReport.from_dict(d.get("failureDetails")))


# ======================================================================================
# Configuration
# ======================================================================================


@dataclass(frozen=True)
class JobEntry:
    """A configured job, resolved from either `"name"` or `{name, description}`."""

    name: str
    description: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.description or self.name

    @property
    def test_id(self) -> str:
        return slugify(self.display_name)


@dataclass(frozen=True)
class SectionConfig:
    id: str
    name: str
    description: str = ""
    maintainers: List[str] = field(default_factory=list)
    jobs: List[JobEntry] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardConfig:
    sections: List[SectionConfig] = field(default_factory=list)

    def configured_jobs(self) -> List[JobEntry]:
        return [job for section in self.sections for job in section.jobs]
