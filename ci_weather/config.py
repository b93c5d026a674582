# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Load `config.yaml` (which sections and jobs the dashboard shows).

Example:
    sections:
      - id: nvidia-gpu
        name: NVIDIA GPU
        description: GPU-backed integration suites
        maintainers: [alice, bob]
        jobs:
          - run-k8s-tests (nvidia-gpu)          # bare name
          - name: run-k8s-tests (coco-tee)      # name + display description
            description: CoCo TEE Suite

Job entries are resolved once here into `JobEntry`; nothing downstream looks at the
raw string-vs-mapping form again.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Union

import yaml

from .exceptions import ConfigError
from .types import DashboardConfig, JobEntry, SectionConfig

logger = logging.getLogger(__name__)


def parse_job_entry(raw: Any, *, where: str = "") -> JobEntry:
    if isinstance(raw, str):
        if not raw.strip():
            raise ConfigError(f"Empty job name {where}".strip())
        return JobEntry(name=raw)
    if isinstance(raw, dict):
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ConfigError(f"Job entry without a name {where}: {raw!r}".strip())
        description = raw.get("description")
        return JobEntry(name=name, description=str(description) if description else None)
    raise ConfigError(f"Job entry must be a string or a mapping {where}: {raw!r}".strip())


def parse_section(raw: Any, *, position: int) -> SectionConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"sections[{position}] must be a mapping, got {type(raw).__name__}")
    section_id = raw.get("id")
    if section_id in (None, ""):
        raise ConfigError(f"sections[{position}] is missing 'id'")
    section_id = str(section_id)

    raw_jobs = raw.get("jobs") or []
    if not isinstance(raw_jobs, list):
        raise ConfigError(f"sections[{position}] ({section_id}) 'jobs' must be a list")
    jobs = [
        parse_job_entry(j, where=f"in section {section_id!r} at jobs[{i}]")
        for i, j in enumerate(raw_jobs)
    ]

    maintainers = raw.get("maintainers") or []
    if not isinstance(maintainers, list):
        maintainers = [maintainers]

    return SectionConfig(
        id=section_id,
        name=str(raw.get("name") or section_id),
        description=str(raw.get("description") or ""),
        maintainers=[str(m) for m in maintainers],
        jobs=jobs,
    )


def parse_config(data: Any) -> DashboardConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config top level must be a mapping, got {type(data).__name__}")
    raw_sections = data.get("sections") or []
    if not isinstance(raw_sections, list):
        raise ConfigError("'sections' must be a list")
    sections: List[SectionConfig] = [parse_section(s, position=i) for i, s in enumerate(raw_sections)]
    return DashboardConfig(sections=sections)


def load_config(path: Union[str, Path]) -> DashboardConfig:
    p = Path(path).expanduser()
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read {p}: {e}", path=str(p)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {p}: {e}", path=str(p)) from e

    try:
        config = parse_config(data)
    except ConfigError as e:
        raise ConfigError(f"{p}: {e}", path=str(p)) from e

    logger.info(f"Config loaded: {len(config.sections)} sections, {len(config.configured_jobs())} jobs")
    return config
