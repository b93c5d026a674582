# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
CLI for ci_weather.

  ci-weather [process] [--config config.yaml] [--runs raw-runs.json] [--logs-dir job-logs] [--output data.json]
  ci-weather fetch --repo owner/name [--workflow ci.yaml] [--days 10]

`process` is the default and runs the pipeline once. Exit codes: 0 success, 1 when
the config or job list cannot be loaded (nothing is written in that case).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .assembler import build_dashboard
from .config import load_config
from .exceptions import CIWeatherError
from .github_fetch import GitHubActionsClient, fetch_inputs
from .snapshot import SnapshotStore, load_job_logs, load_jobs
from .summary import log_inputs, log_summary

logger = logging.getLogger(__name__)

COMMANDS = ("process", "fetch")


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format="[%(levelname)s] %(message)s")


def cmd_process(args: argparse.Namespace) -> int:
    logger.info("Starting data processing...")
    config = load_config(args.config)
    jobs = load_jobs(args.runs)
    logs = load_job_logs(args.logs_dir)

    store = SnapshotStore(args.output)
    cache_store = store if args.cache is None else SnapshotStore(args.cache)
    previous = cache_store.load()

    log_inputs(config, jobs)
    data = build_dashboard(config, jobs, logs, previous)
    store.write(data)
    logger.info(f"Written {store.path} with {len(data['sections'])} sections")
    log_summary(data)
    logger.info("Data processing complete!")
    return 0


def cmd_fetch(args: argparse.Namespace) -> int:
    owner, sep, repo = str(args.repo).partition("/")
    if not sep or not owner or not repo:
        logger.error(f"--repo must look like owner/name, got {args.repo!r}")
        return 2
    client = GitHubActionsClient(token=args.token)
    if not client.token:
        logger.warning("No GitHub token found; anonymous requests are limited to 60/hour")
    fetch_inputs(
        client,
        owner,
        repo,
        days=int(args.days),
        runs_path=args.runs,
        logs_dir=args.logs_dir,
        workflow=args.workflow,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ci-weather",
        description="Turn GitHub Actions jobs + logs into a dashboard data.json with 10-day weather and a failing-test index.",
    )
    sub = parser.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--runs", type=Path, default=Path("raw-runs.json"), help="Job list JSON (default: raw-runs.json)")
    common.add_argument("--logs-dir", type=Path, default=Path("job-logs"), help="Directory of <job_id>.log files (default: job-logs)")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    p = sub.add_parser("process", parents=[common], help="Build data.json once (default)")
    p.add_argument("--config", type=Path, default=Path("config.yaml"), help="Sections/jobs YAML (default: config.yaml)")
    p.add_argument("--output", type=Path, default=Path("data.json"), help="Output JSON (default: data.json)")
    p.add_argument("--cache", type=Path, default=None, help="Previous snapshot to reuse (default: same as --output)")
    p.set_defaults(func=cmd_process)

    f = sub.add_parser("fetch", parents=[common], help="Download jobs and failed-job logs from GitHub")
    f.add_argument("--repo", required=True, help="owner/name")
    f.add_argument("--workflow", default=None, help="Workflow file name or id (default: all workflows)")
    f.add_argument("--days", type=int, default=10, help="How many days of runs to fetch (default: 10)")
    f.add_argument("--token", default=None, help="GitHub token (default: $GITHUB_TOKEN or ~/.config/github-token)")
    f.set_defaults(func=cmd_fetch)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args_list: List[str] = list(argv) if argv is not None else sys.argv[1:]
    if not args_list or args_list[0] not in COMMANDS + ("-h", "--help"):
        args_list.insert(0, "process")
    args = build_parser().parse_args(args_list)
    _setup_logging(bool(args.debug))

    try:
        return int(args.func(args))
    except CIWeatherError as e:
        logger.error(str(e))
        return 1
