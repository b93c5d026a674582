# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Error types for ci_weather.

Fatal input errors (config / job list) derive from `CIWeatherError` so the CLI can
map them to a non-zero exit code in one place. Per-log and per-cache problems are
*not* exceptions: they are logged and treated as "no data" by the callers.
"""

from __future__ import annotations


class CIWeatherError(Exception):
    pass


class ConfigError(CIWeatherError):
    def __init__(self, message: str, *, path: str = ""):
        super().__init__(message)
        self.path = str(path or "")


class InputError(CIWeatherError):
    def __init__(self, message: str, *, path: str = ""):
        super().__init__(message)
        self.path = str(path or "")


class GitHubAPIError(CIWeatherError):
    def __init__(self, *, status_code: int, endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")


class GitHubRateLimitError(GitHubAPIError):
    pass
