# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Global index of failing test names across every configured job and run.

Lifecycle (once per invocation):
  1. `FailedTestsIndex.from_snapshot(previous["failedTestsIndex"])` seeds it
  2. `record(...)` is called for every failure the weather builder sees
  3. `finalize(now)` trims to the 30-day window and derives `affectedJobs`
  4. `to_dict()` is written back into data.json

Shape on disk:
    {
      "renders widget": {
        "occurrences": [{"date": "...", "jobName": "GPU Suite", "jobId": "123", "runId": "456"}],
        "totalCount": 1,
        "affectedJobs": [{"jobName": "GPU Suite", "count": 1, "latestDate": "...", "jobIds": ["123"]}],
        "uniqueJobsAffected": 1
      }
    }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

from .timefmt import parse_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS: int = 30

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Occurrence:
    date: str
    job_name: str
    job_id: str
    run_id: Optional[str] = None

    @property
    def when(self) -> Optional[datetime]:
        return parse_iso(self.date)

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "jobName": self.job_name, "jobId": self.job_id, "runId": self.run_id}

    @classmethod
    def from_dict(cls, d: Any) -> Optional["Occurrence"]:
        if not isinstance(d, dict) or d.get("jobId") in (None, ""):
            return None
        run_id = d.get("runId")
        return cls(
            date=str(d.get("date") or ""),
            job_name=str(d.get("jobName") or ""),
            job_id=str(d["jobId"]),
            run_id=str(run_id) if run_id not in (None, "") else None,
        )


@dataclass
class AffectedJob:
    job_name: str
    count: int = 0
    latest_date: str = ""
    job_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobName": self.job_name,
            "count": self.count,
            "latestDate": self.latest_date,
            "jobIds": list(self.job_ids),
        }


@dataclass
class IndexEntry:
    occurrences: List[Occurrence] = field(default_factory=list)
    affected_jobs: List[AffectedJob] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.occurrences)

    @property
    def unique_jobs_affected(self) -> int:
        return len(self.affected_jobs)

    def has_job(self, job_id: str) -> bool:
        return any(o.job_id == job_id for o in self.occurrences)

    def sort_occurrences(self) -> None:
        """Newest first. Stable, so same-day occurrences keep insertion order."""
        self.occurrences.sort(key=lambda o: o.when or _OLDEST, reverse=True)

    def derive_affected_jobs(self) -> None:
        groups: Dict[str, AffectedJob] = {}
        for occ in self.occurrences:
            grp = groups.get(occ.job_name)
            if grp is None:
                # occurrences are newest-first, so the first one seen is the latest
                grp = AffectedJob(job_name=occ.job_name, latest_date=occ.date)
                groups[occ.job_name] = grp
            grp.count += 1
            grp.job_ids.append(occ.job_id)
        # sorted() is stable: equal counts keep discovery order
        self.affected_jobs = sorted(groups.values(), key=lambda g: g.count, reverse=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "occurrences": [o.to_dict() for o in self.occurrences],
            "totalCount": self.total_count,
            "affectedJobs": [a.to_dict() for a in self.affected_jobs],
            "uniqueJobsAffected": self.unique_jobs_affected,
        }


class FailedTestsIndex:
    """Cumulative, deduplicated (per test name + job id), time-windowed failure registry."""

    def __init__(self, *, window_days: int = DEFAULT_WINDOW_DAYS):
        self.window_days = int(window_days)
        self._entries: Dict[str, IndexEntry] = {}

    @classmethod
    def from_snapshot(cls, raw: Any, *, window_days: int = DEFAULT_WINDOW_DAYS) -> "FailedTestsIndex":
        """Seed from a previously written `failedTestsIndex` mapping (or start empty).

        Only occurrences are trusted; `totalCount` / `affectedJobs` are re-derived.
        """
        index = cls(window_days=window_days)
        if raw is None:
            return index
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring cached failedTestsIndex of type {type(raw).__name__}")
            return index
        for test_name, entry_raw in raw.items():
            occs = entry_raw.get("occurrences") if isinstance(entry_raw, dict) else None
            if not isinstance(occs, list):
                continue
            entry = IndexEntry()
            seen: set = set()
            for o in (Occurrence.from_dict(x) for x in occs):
                if o is None or o.job_id in seen:
                    continue
                seen.add(o.job_id)
                entry.occurrences.append(o)
            entry.sort_occurrences()
            index._entries[str(test_name)] = entry
        return index

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, test_name: object) -> bool:
        return test_name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, test_name: str) -> Optional[IndexEntry]:
        return self._entries.get(test_name)

    def record(
        self,
        test_name: str,
        date_iso: str,
        job_name: str,
        job_id: Any,
        run_id: Optional[Any] = None,
    ) -> bool:
        """Add one failure occurrence. Returns False if this job id was already recorded."""
        entry = self._entries.setdefault(test_name, IndexEntry())
        job_id_s = str(job_id)
        if entry.has_job(job_id_s):
            return False
        entry.occurrences.append(
            Occurrence(
                date=date_iso,
                job_name=job_name,
                job_id=job_id_s,
                run_id=str(run_id) if run_id not in (None, "") else None,
            )
        )
        entry.sort_occurrences()
        return True

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or utc_now()) - timedelta(days=self.window_days)

    def finalize(self, now: Optional[datetime] = None) -> None:
        """Trim to the window, re-sort, and derive per-job breakdowns.

        Occurrences with an unparseable date cannot be placed in the window and are
        dropped; entries with nothing left are removed.
        """
        cutoff = self.cutoff(now)
        for test_name in list(self._entries):
            entry = self._entries[test_name]
            kept = []
            for o in entry.occurrences:
                when = o.when
                if when is not None and when >= cutoff:
                    kept.append(o)
            entry.occurrences = kept
            if not kept:
                del self._entries[test_name]
                continue
            entry.sort_occurrences()
            entry.derive_affected_jobs()

    def to_dict(self) -> Dict[str, Any]:
        return {name: entry.to_dict() for name, entry in self._entries.items()}
