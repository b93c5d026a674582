# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Fetch the pipeline inputs from the GitHub Actions REST API.

Writes:
- raw-runs.json    {"jobs": [...]} for every workflow run created in the last N days
- job-logs/<id>.log for completed, failed jobs (the only ones the parser reads)

Endpoints used:
  GET /repos/{owner}/{repo}/actions/runs?created=>=YYYY-MM-DD
  GET /repos/{owner}/{repo}/actions/workflows/{workflow}/runs?created=>=YYYY-MM-DD
  GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs?filter=all
  GET /repos/{owner}/{repo}/actions/jobs/{job_id}/logs   (302 -> signed blob URL)
"""

from __future__ import annotations

import io
import json
import logging
import os
import zipfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from .exceptions import GitHubAPIError, GitHubRateLimitError
from .jobs import job_id_str
from .snapshot import LOG_SUFFIX, atomic_write_text
from .timefmt import utc_now
from .types import JobConclusion, JobStatus

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
PER_PAGE = 100
DEFAULT_TIMEOUT_S = 30


def get_github_token(token: Optional[str] = None) -> Optional[str]:
    """Token resolution: explicit arg > $GITHUB_TOKEN > ~/.config/github-token."""
    if token:
        return token
    env_token = os.environ.get("GITHUB_TOKEN", "").strip()
    if env_token:
        return env_token
    try:
        token_file = Path.home() / ".config" / "github-token"
        if token_file.exists():
            tok = (token_file.read_text() or "").strip()
            if tok:
                return tok
    except OSError:
        pass
    return None


def decode_log_payload(payload: bytes) -> str:
    """Job logs come back as plain text; run-level archives are zips. Handle both."""
    if payload[:2] == b"PK":
        try:
            parts: List[str] = []
            with zipfile.ZipFile(io.BytesIO(payload)) as zf:
                names = zf.namelist()
                for name in names:
                    text = zf.read(name).decode("utf-8", errors="replace")
                    if not text:
                        continue
                    if len(names) > 1:
                        parts.append(f"===== {name} =====\n")
                    parts.append(text if text.endswith("\n") else text + "\n")
            return "".join(parts)
        except zipfile.BadZipFile:
            pass
    return payload.decode("utf-8", errors="replace")


class GitHubActionsClient:
    """Minimal GitHub Actions REST client.

    Example:
        client = GitHubActionsClient()
        runs = client.list_workflow_runs("owner", "repo", since=utc_now() - timedelta(days=10))
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = GITHUB_API_URL,
        timeout: int = DEFAULT_TIMEOUT_S,
    ):
        self.token = get_github_token(token)
        self.base_url = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            self.headers["Authorization"] = f"token {self.token}"

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.get(url, headers=self.headers, params=params, timeout=self.timeout, allow_redirects=True)
        except requests.exceptions.RequestException as e:
            raise GitHubAPIError(status_code=0, endpoint=endpoint, message=f"GitHub API request failed for {endpoint}: {e}") from e

        if resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0":
            raise GitHubRateLimitError(
                status_code=403,
                endpoint=endpoint,
                message="GitHub API rate limit exceeded. Provide --token or set GITHUB_TOKEN.",
            )
        if resp.status_code >= 400:
            raise GitHubAPIError(
                status_code=resp.status_code,
                endpoint=endpoint,
                message=f"GitHub API returned {resp.status_code} for {endpoint}: {resp.text[:200]}",
            )
        return resp

    def _get_paginated(self, endpoint: str, key: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            query = dict(params or {})
            query.update({"per_page": PER_PAGE, "page": page})
            data = self._get(endpoint, query).json()
            batch = data.get(key) if isinstance(data, dict) else None
            if not batch:
                break
            items.extend(batch)
            total = data.get("total_count")
            if len(batch) < PER_PAGE or (isinstance(total, int) and len(items) >= total):
                break
            page += 1
        return items

    def list_workflow_runs(
        self, owner: str, repo: str, *, since: datetime, workflow: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        if workflow:
            endpoint = f"/repos/{owner}/{repo}/actions/workflows/{workflow}/runs"
        else:
            endpoint = f"/repos/{owner}/{repo}/actions/runs"
        return self._get_paginated(endpoint, "workflow_runs", {"created": f">={since.strftime('%Y-%m-%d')}"})

    def list_run_jobs(self, owner: str, repo: str, run_id: Any) -> List[Dict[str, Any]]:
        jobs = self._get_paginated(f"/repos/{owner}/{repo}/actions/runs/{run_id}/jobs", "jobs", {"filter": "all"})
        for job in jobs:
            job["workflow_run_id"] = str(run_id)
        return jobs

    def download_job_log(self, owner: str, repo: str, job_id: Any) -> str:
        resp = self._get(f"/repos/{owner}/{repo}/actions/jobs/{job_id}/logs")
        return decode_log_payload(resp.content)


def _wants_log(job: Dict[str, Any]) -> bool:
    return job.get("status") == JobStatus.COMPLETED.value and job.get("conclusion") == JobConclusion.FAILURE.value


def fetch_inputs(
    client: GitHubActionsClient,
    owner: str,
    repo: str,
    *,
    days: int,
    runs_path: Union[str, Path],
    logs_dir: Union[str, Path],
    workflow: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Download jobs + failed-job logs. Returns counters for the caller to report."""
    since = (now or utc_now()) - timedelta(days=int(days))
    runs = client.list_workflow_runs(owner, repo, since=since, workflow=workflow)
    logger.info(f"Found {len(runs)} workflow runs since {since.strftime('%Y-%m-%d')}")

    jobs: List[Dict[str, Any]] = []
    for run in runs:
        jobs.extend(client.list_run_jobs(owner, repo, run["id"]))
    atomic_write_text(Path(runs_path), json.dumps({"jobs": jobs}, indent=2) + "\n")
    logger.info(f"Wrote {len(jobs)} jobs to {runs_path}")

    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)
    stats = {"runs": len(runs), "jobs": len(jobs), "logs_downloaded": 0, "logs_cached": 0, "logs_failed": 0}
    for job in jobs:
        job_id = job_id_str(job)
        if job_id is None or not _wants_log(job):
            continue
        dest = logs_path / f"{job_id}{LOG_SUFFIX}"
        if dest.exists():
            stats["logs_cached"] += 1
            continue
        try:
            text = client.download_job_log(owner, repo, job_id)
        except GitHubRateLimitError:
            raise
        except GitHubAPIError as e:
            logger.warning(f"Failed to fetch log for job {job_id}: {e}")
            stats["logs_failed"] += 1
            continue
        atomic_write_text(dest, text)
        stats["logs_downloaded"] += 1

    logger.info(
        f"Logs: {stats['logs_downloaded']} downloaded, {stats['logs_cached']} already present, "
        f"{stats['logs_failed']} failed"
    )
    return stats
