# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Parse the "Report tests" section of a GitHub Actions job log into a FailureReport.

The scanner is a two-state machine (outside / inside the report section). Inside,
each line is classified by the ordered `TAP_LINE_RULES` (first match wins):

    not ok 4 - crashes                    -> failed (or skipped if `# skip` / `# todo`)
    ok 1 - loads config                   -> passed
    1..4                                  -> plan, ignored
    anything else                         -> ignored

Example:
    >>> text = "##[group]Report tests\\nok 1 - a\\nnot ok 2 - b\\n##[endgroup]\\n"
    >>> parse_report_text(text).to_dict()["stats"]
    {'total': 2, 'passed': 1, 'failed': 1, 'skipped': 0}
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from .regexes import (
    REPORT_SECTION_END_RE,
    REPORT_SECTION_START_RE,
    TAP_LINE_RULES,
    TAP_SKIP_DIRECTIVE_RE,
)
from .types import Failure, FailureReport, TestStats

logger = logging.getLogger(__name__)


def _classify(line: str):
    for kind, rx in TAP_LINE_RULES:
        m = rx.search(line)
        if m:
            return kind, m
    return None, None


def parse_report_lines(lines: Iterable[str]) -> Optional[FailureReport]:
    """Scan log lines; return None if the section is absent or holds no test lines."""
    failures = []
    stats = TestStats()
    in_section = False

    for line in lines:
        line = line.rstrip("\r")
        # a start marker is never a test line, even inside the section
        if REPORT_SECTION_START_RE.search(line):
            in_section = True
            continue
        if not in_section:
            continue
        if REPORT_SECTION_END_RE.search(line):
            break

        kind, m = _classify(line)
        if kind == "not_ok":
            stats.total += 1
            comment = m.group(3) or ""
            if TAP_SKIP_DIRECTIVE_RE.search(comment):
                stats.skipped += 1
                continue
            stats.failed += 1
            failures.append(Failure(number=int(m.group(1)), name=m.group(2).strip(), comment=comment))
        elif kind == "ok":
            stats.total += 1
            stats.passed += 1

    if not failures and stats.total == 0:
        return None
    return FailureReport(failures=failures, stats=stats)


def parse_report_text(text: str) -> Optional[FailureReport]:
    return parse_report_lines((text or "").split("\n"))


class LogParser:
    """Parses job logs by job id.

    Logs are fully materialized up front (job id string -> raw text). Results are
    memoized because the weather builder and the error-details step may ask for the
    same job twice in one run.
    """

    def __init__(self, logs: Mapping[str, str]):
        self._logs = logs
        self._memo: Dict[str, Optional[FailureReport]] = {}

    def parse(self, job_id) -> Optional[FailureReport]:
        key = str(job_id)
        if key in self._memo:
            return self._memo[key]
        text = self._logs.get(key)
        if not text:
            logger.debug(f"No log for job {key}")
            report = None
        else:
            report = parse_report_text(text)
            if report is None:
                logger.debug(f"Job {key}: no report-tests section with TAP lines")
        self._memo[key] = report
        return report
