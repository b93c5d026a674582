"""
Pytest tests for ci_weather/assembler.py (end-to-end `build_dashboard`).
"""

import copy
from datetime import datetime, timedelta, timezone

from ci_weather.assembler import (
    MAX_ERROR_FAILURES,
    VIEW_FULL_LOG_MESSAGE,
    CachedSnapshot,
    build_dashboard,
    build_error_details,
    failed_tests_in_weather,
)
from ci_weather.config import parse_config
from ci_weather.log_parser import LogParser
from ci_weather.types import DayStatus, Failure, FailureReport, TestStats, WeatherDay

NOW = datetime(2025, 12, 24, 15, 30, 0, tzinfo=timezone.utc)
TODAY = datetime(2025, 12, 24, tzinfo=timezone.utc)

CONFIG = parse_config(
    {
        "sections": [
            {
                "id": "gpu",
                "name": "GPU",
                "description": "GPU-backed suites",
                "maintainers": ["alice"],
                "jobs": [
                    "run-k8s-tests (nvidia-gpu)",
                    {"name": "run-k8s-tests (absent)", "description": "GPU Suite"},
                ],
            },
            {"id": "tee", "jobs": [{"name": "run-k8s-tests (coco-tee)", "description": "CoCo TEE"}]},
        ]
    }
)


def _ts(day_offset, hour=9, minute=0):
    return (TODAY - timedelta(days=day_offset) + timedelta(hours=hour, minutes=minute)).strftime("%Y-%m-%dT%H:%M:%SZ")


def _job(job_id, name, day_offset, conclusion, *, run_attempt=1, status="completed"):
    return {
        "id": job_id,
        "name": name,
        "run_id": 5000 + job_id,
        "status": status,
        "conclusion": conclusion,
        "started_at": _ts(day_offset),
        "completed_at": _ts(day_offset, minute=12),
        "created_at": _ts(day_offset, hour=8),
        "run_attempt": run_attempt,
        "steps": [{"name": "Run bats", "conclusion": "failure" if conclusion == "failure" else "success"}],
    }


GPU = "run-k8s-tests (nvidia-gpu)"
TEE = "run-k8s-tests (coco-tee)"

JOBS = [
    _job(1, GPU, 0, "failure", run_attempt=3),
    _job(2, GPU, 1, "success"),
    _job(3, GPU, 2, "failure"),
    _job(4, TEE, 0, "success"),
    _job(5, TEE, 4, "failure"),
    _job(6, "unrelated job", 0, "failure"),
]

LOGS = {
    "1": "##[group]Report tests\n1..3\nok 1 - boots\nnot ok 2 - attaches gpu\nnot ok 3 - runs nvidia-smi # skip driver\n##[endgroup]\n",
    "3": "Report tests\nnot ok 1 - attaches gpu\nnot ok 2 - pulls image\n",
    "6": "Report tests\nnot ok 1 - attaches gpu\n",
}


def _tests(data, section_id):
    return {t["id"]: t for s in data["sections"] if s["id"] == section_id for t in s["tests"]}


def test_dashboard_shape_and_sections():
    data = build_dashboard(CONFIG, JOBS, LOGS, None, now=NOW)
    assert data["lastRefresh"] == "2025-12-24T15:30:00.000Z"
    assert [s["id"] for s in data["sections"]] == ["gpu", "tee"]
    gpu = data["sections"][0]
    assert (gpu["name"], gpu["description"], gpu["maintainers"]) == ("GPU", "GPU-backed suites", ["alice"])
    tee = data["sections"][1]
    assert (tee["name"], tee["description"], tee["maintainers"]) == ("tee", "", [])


def test_failed_test_record():
    data = build_dashboard(CONFIG, JOBS, LOGS, None, now=NOW)
    rec = _tests(data, "gpu")["run-k8s-tests--nvidia-gpu-"]
    assert rec["name"] == GPU
    assert rec["fullName"] == GPU
    assert rec["status"] == "failed"
    assert rec["duration"] == "12m 0s"
    assert rec["lastFailure"] == "6h ago"
    assert rec["lastSuccess"] == "Yesterday"
    assert rec["retried"] == 2
    assert rec["setupRetry"] is False
    assert rec["jobId"] == "1"
    assert rec["runId"] == "5001"
    assert rec["failureCount"] == 2
    assert [d["status"] for d in rec["weatherHistory"][-3:]] == ["failed", "passed", "failed"]

    assert rec["failedTestsInWeather"] == [
        {"name": "attaches gpu", "count": 2, "dates": ["2025-12-22T00:00:00.000Z", "2025-12-24T00:00:00.000Z"]},
        {"name": "pulls image", "count": 1, "dates": ["2025-12-22T00:00:00.000Z"]},
    ]

    err = rec["error"]
    assert err["step"] == "Run bats"
    assert err["testResults"] == {"total": 3, "passed": 1, "failed": 1, "skipped": 1}
    assert err["failures"] == [{"number": 2, "name": "attaches gpu", "comment": ""}]
    assert err["output"] == "not ok 2 - attaches gpu"


def test_not_run_test_without_jobs():
    data = build_dashboard(CONFIG, JOBS, LOGS, None, now=NOW)
    rec = _tests(data, "gpu")["gpu-suite"]
    assert rec["name"] == "GPU Suite"
    assert rec["fullName"] == "run-k8s-tests (absent)"
    assert rec["status"] == "not_run"
    assert rec["duration"] == "N/A"
    assert rec["lastFailure"] == "Never"
    assert rec["lastSuccess"] == "Never"
    assert len(rec["weatherHistory"]) == 10
    assert all(d["status"] == "none" for d in rec["weatherHistory"])
    assert rec["failureCount"] == 0
    assert rec["failedTestsInWeather"] == []
    assert rec["retried"] == 0
    assert rec["jobId"] is None and rec["runId"] is None
    assert rec["error"] is None


def test_failed_test_without_parsable_log_gets_generic_error():
    data = build_dashboard(CONFIG, JOBS, {}, None, now=NOW)
    rec = _tests(data, "gpu")["run-k8s-tests--nvidia-gpu-"]
    assert rec["error"] == {"step": "Run bats", "output": VIEW_FULL_LOG_MESSAGE}
    assert data["failedTestsIndex"] == {}


def test_failed_tests_index_is_global_across_sections():
    data = build_dashboard(CONFIG, JOBS, LOGS, None, now=NOW)
    index = data["failedTestsIndex"]
    # job 6 is not configured, so it never reaches the index
    assert set(index) == {"attaches gpu", "pulls image"}
    entry = index["attaches gpu"]
    assert entry["totalCount"] == 2
    assert [o["jobId"] for o in entry["occurrences"]] == ["1", "3"]
    assert entry["affectedJobs"] == [
        {"jobName": GPU, "count": 2, "latestDate": "2025-12-24T00:00:00.000Z", "jobIds": ["1", "3"]}
    ]
    assert entry["uniqueJobsAffected"] == 1


def test_pipeline_is_idempotent_with_its_own_output_as_cache():
    first = build_dashboard(CONFIG, JOBS, LOGS, None, now=NOW)
    second = build_dashboard(CONFIG, JOBS, LOGS, copy.deepcopy(first), now=NOW)
    first.pop("lastRefresh")
    second.pop("lastRefresh")
    assert first == second


def test_cache_backfills_days_whose_jobs_aged_out():
    """Yesterday's snapshot knows about a failure whose job is no longer in the job list."""
    first = build_dashboard(CONFIG, JOBS, LOGS, None, now=NOW)
    later = NOW + timedelta(days=1)
    jobs_without_3 = [j for j in JOBS if j["id"] != 3]
    second = build_dashboard(CONFIG, jobs_without_3, {}, first, now=later)

    rec = _tests(second, "gpu")["run-k8s-tests--nvidia-gpu-"]
    by_date = {d["date"]: d for d in rec["weatherHistory"]}
    day = by_date["2025-12-22T00:00:00.000Z"]
    assert day["status"] == "failed"
    assert day["jobId"] is None
    assert [f["name"] for f in day["failureDetails"]["failures"]] == ["attaches gpu", "pulls image"]

    # job 1 still exists but its log is gone: details come from the cached day
    today_before = by_date["2025-12-24T00:00:00.000Z"]
    assert today_before["jobId"] == "1"
    assert today_before["failureDetails"]["failures"][0]["name"] == "attaches gpu"

    # index survives from the seed even without fresh logs
    assert second["failedTestsIndex"]["pulls image"]["totalCount"] == 1


def test_build_error_details_caps_failures():
    n = MAX_ERROR_FAILURES + 5
    log = "Report tests\n" + "\n".join(f"not ok {i} - case {i}" for i in range(1, n + 1))
    err = build_error_details({"id": 42, "steps": []}, LogParser({"42": log}))
    assert len(err["failures"]) == MAX_ERROR_FAILURES
    assert err["testResults"]["failed"] == n
    assert len(err["output"].split("\n")) == n
    assert err["step"] == "Unknown step"


def test_failed_tests_in_weather_counts_only_own_days():
    report = FailureReport(failures=[Failure(1, "a"), Failure(2, "b")], stats=TestStats(total=2, failed=2))
    history = [
        WeatherDay(date="d1", status=DayStatus.FAILED, failure_details=report),
        WeatherDay(date="d2", status=DayStatus.PASSED),
        WeatherDay(
            date="d3",
            status=DayStatus.FAILED,
            failure_details=FailureReport(failures=[Failure(1, "b")], stats=TestStats(total=1, failed=1)),
        ),
    ]
    assert failed_tests_in_weather(history) == [
        {"name": "b", "count": 2, "dates": ["d1", "d3"]},
        {"name": "a", "count": 1, "dates": ["d1"]},
    ]


def test_cached_snapshot_lookup():
    snap = CachedSnapshot({"sections": [{"id": "s", "tests": [{"id": "t", "weatherHistory": [{"date": "x"}]}]}]})
    assert snap.weather_history("s", "t") == [{"date": "x"}]
    assert snap.weather_history("s", "missing") is None
    assert snap.weather_history("other", "t") is None
    assert CachedSnapshot(None).weather_history("s", "t") is None
    assert CachedSnapshot(None).failed_tests_index() is None


def test_running_status_from_latest_job():
    jobs = [_job(7, TEE, 0, None, status="in_progress")] + [j for j in JOBS if j["name"] == TEE]
    jobs[0]["started_at"] = _ts(0, hour=12)
    data = build_dashboard(CONFIG, jobs, {}, None, now=NOW)
    rec = _tests(data, "tee")["coco-tee"]
    assert rec["status"] == "running"
    assert rec["error"] is None
    assert rec["weatherHistory"][-1]["status"] == "running"


def test_corrupted_cache_dates_do_not_abort_the_run():
    previous = {
        "sections": [
            {
                "id": "tee",
                "tests": [
                    {"id": "coco-tee", "weatherHistory": [{"date": "0001-01-01T00:00:00+05:00", "status": "failed"}]}
                ],
            }
        ],
        "failedTestsIndex": {
            "x": {"occurrences": [{"date": "9999-12-31T23:59:59-05:00", "jobName": "CoCo TEE", "jobId": "77"}]}
        },
    }
    data = build_dashboard(CONFIG, JOBS, LOGS, previous, now=NOW)
    assert "x" not in data["failedTestsIndex"]
    rec = _tests(data, "tee")["coco-tee"]
    assert len(rec["weatherHistory"]) == 10
    assert rec["status"] == "passed"
