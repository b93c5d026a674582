"""Regex catalog for `ci_weather`.

Conventions:
- REPORT_* : "report tests" section boundaries (GitHub Actions group markers)
- TAP_*    : TAP line classification inside the report section

No side effects and no imports from other `ci_weather` modules (avoid cycles).
"""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple

#
# =============================================================================
# REPORT_* (section boundaries)
# =============================================================================
#

# Entering the section, e.g.:
#   2025-12-25T06:54:51.4973999Z ##[group]Run ./report-tests.sh
#   2025-12-25T06:54:51.4973999Z ##[group]Report tests
REPORT_SECTION_START_RE: Pattern[str] = re.compile(r"Report tests|##\[group\]Report")

# Leaving the section: end of the group, or the runner moving on to a post-job step.
REPORT_SECTION_END_RE: Pattern[str] = re.compile(r"##\[endgroup\]|Post ")

#
# =============================================================================
# TAP_* (line classification)
# =============================================================================
#

# `not ok 3 - renders widget # TODO flaky`
# Searched (not anchored) so Actions timestamp prefixes are tolerated.
TAP_NOT_OK_RE: Pattern[str] = re.compile(r"not ok (\d+) - (.+?)(?:\s*#\s*(.*))?$")

# `ok 1 - loads config`
TAP_OK_RE: Pattern[str] = re.compile(r"ok (\d+) - (.+?)(?:\s*#\s*(.*))?$")

# `1..4` (plan line; informational only)
TAP_PLAN_RE: Pattern[str] = re.compile(r"^1\.\.(\d+)")

# Comment directives that turn a `not ok` into a skipped test.
TAP_SKIP_DIRECTIVE_RE: Pattern[str] = re.compile(r"skip|todo", re.IGNORECASE)

# Ordered, first-match-wins. `not ok` must precede `ok` because the `ok` pattern is a
# substring match and would otherwise claim every `not ok` line.
TAP_LINE_RULES: List[Tuple[str, Pattern[str]]] = [
    ("not_ok", TAP_NOT_OK_RE),
    ("ok", TAP_OK_RE),
    ("plan", TAP_PLAN_RE),
]
