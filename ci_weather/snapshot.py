# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Pipeline inputs and the persisted snapshot.

Files (defaults, relative to the working directory):
- raw-runs.json   {"jobs": [<GitHub Actions job dict>, ...]}      required
- job-logs/       <job_id>.log raw log text                        optional
- data.json       previous output; read as cache, then rewritten   optional

Missing/unparseable job list is fatal (InputError). Everything else degrades to
"no data" with a warning.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import InputError

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"


def load_jobs(path: Union[str, Path]) -> List[Dict[str, Any]]:
    p = Path(path).expanduser()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise InputError(f"Failed to read {p}: {e}", path=str(p)) from e
    except json.JSONDecodeError as e:
        raise InputError(f"Failed to parse {p}: {e}", path=str(p)) from e

    if isinstance(raw, dict):
        items = raw.get("jobs") or []
    elif isinstance(raw, list):
        items = raw
    else:
        raise InputError(f"{p}: expected an object with 'jobs' or a list, got {type(raw).__name__}", path=str(p))
    if not isinstance(items, list):
        raise InputError(f"{p}: 'jobs' must be a list", path=str(p))

    jobs = [j for j in items if isinstance(j, dict)]
    if len(jobs) != len(items):
        logger.warning(f"{p}: dropped {len(items) - len(jobs)} non-object job entries")
    logger.info(f"Loaded {len(jobs)} jobs")
    return jobs


def load_job_logs(logs_dir: Union[str, Path]) -> Dict[str, str]:
    """Read every `<job_id>.log` under `logs_dir` into memory."""
    d = Path(logs_dir).expanduser()
    if not d.is_dir():
        logger.info(f"No job log directory at {d}")
        return {}
    log_files = sorted(p for p in d.iterdir() if p.is_file() and p.name.endswith(LOG_SUFFIX))
    logger.info(f"Found {len(log_files)} job log files")

    logs: Dict[str, str] = {}
    for p in log_files:
        job_id = p.name[: -len(LOG_SUFFIX)]
        try:
            logs[job_id] = p.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read log for job {job_id}: {e}")
    return logs


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write a temp file in the same directory, then os.replace() it into place."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(f".{p.name}.tmp.{os.getpid()}")
    tmp.write_text(content, encoding=encoding)
    os.replace(str(tmp), str(p))


class SnapshotStore:
    """The dashboard's `data.json`: previous run's output in, this run's output out."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._data: Optional[Dict[str, Any]] = None
        self._loaded = False

    def load(self) -> Optional[Dict[str, Any]]:
        """Previous snapshot, or None if missing/unusable (loaded once per instance)."""
        if self._loaded:
            return self._data
        self._loaded = True
        if not self.path.exists():
            logger.info(f"No cached data at {self.path}")
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"No cached data available: {e}")
            return None
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring cached data in {self.path}: top level is {type(raw).__name__}")
            return None

        self._data = raw
        sections = raw.get("sections")
        index = raw.get("failedTestsIndex")
        logger.info(f"Loaded cached data from {raw.get('lastRefresh') or 'unknown time'}")
        logger.info(f"  Cache has {len(sections) if isinstance(sections, list) else 0} sections")
        if isinstance(index, dict):
            logger.info(f"  Cache has {len(index)} tracked failed tests")
        return self._data

    def write(self, data: Dict[str, Any]) -> None:
        atomic_write_text(self.path, json.dumps(data, indent=2) + "\n")
        self._data = data
        self._loaded = True
