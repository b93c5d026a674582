"""Pytest tests for ci_weather/config.py."""

import pytest

from ci_weather.config import load_config, parse_config
from ci_weather.exceptions import ConfigError

CONFIG_YAML = """\
sections:
  - id: nvidia-gpu
    name: NVIDIA GPU
    description: GPU-backed integration suites
    maintainers: [alice, bob]
    jobs:
      - run-k8s-tests (nvidia-gpu)
      - name: run-k8s-tests (coco-tee)
        description: CoCo TEE Suite
  - id: misc
    maintainers: carol
"""


def test_load_config_string_and_mapping_entries(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    config = load_config(path)

    assert [s.id for s in config.sections] == ["nvidia-gpu", "misc"]
    gpu = config.sections[0]
    assert gpu.name == "NVIDIA GPU"
    assert gpu.maintainers == ["alice", "bob"]

    bare, described = gpu.jobs
    assert (bare.name, bare.display_name, bare.test_id) == (
        "run-k8s-tests (nvidia-gpu)",
        "run-k8s-tests (nvidia-gpu)",
        "run-k8s-tests--nvidia-gpu-",
    )
    assert (described.name, described.display_name, described.test_id) == (
        "run-k8s-tests (coco-tee)",
        "CoCo TEE Suite",
        "coco-tee-suite",
    )

    misc = config.sections[1]
    assert misc.name == "misc"
    assert misc.description == ""
    assert misc.maintainers == ["carol"]
    assert misc.jobs == []
    assert len(config.configured_jobs()) == 2


def test_empty_config_has_no_sections():
    assert parse_config(None).sections == []
    assert parse_config({}).sections == []


@pytest.mark.parametrize(
    "data",
    [
        ["not", "a", "mapping"],
        {"sections": "nope"},
        {"sections": ["nope"]},
        {"sections": [{"name": "no id"}]},
        {"sections": [{"id": "x", "jobs": "nope"}]},
        {"sections": [{"id": "x", "jobs": [""]}]},
        {"sections": [{"id": "x", "jobs": [{"description": "no name"}]}]},
        {"sections": [{"id": "x", "jobs": [42]}]},
    ],
)
def test_parse_config_rejects_bad_structure(data):
    with pytest.raises(ConfigError):
        parse_config(data)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError) as exc:
        load_config(tmp_path / "missing.yaml")
    assert exc.value.path.endswith("missing.yaml")


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("sections: [unclosed\n")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(path)
