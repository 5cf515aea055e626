"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from director_node import config as config_module
from director_node.config import RuntimeConfig, get_file_config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the default config file at a temp dir and clear env overrides."""
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "missing.json")
    for name in ("DIRECTOR_NODE_STORAGE_PATH", "R2_BUCKET", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)


def write_config(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_file_is_empty(tmp_path):
    assert get_file_config(tmp_path / "nope.json") == {}


def test_invalid_json_is_empty(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert get_file_config(path) == {}


def test_non_object_is_empty(tmp_path):
    assert get_file_config(write_config(tmp_path / "list.json", [1, 2])) == {}


def test_defaults():
    config = RuntimeConfig()
    assert config.storage_path == config_module.DEFAULT_STORAGE_PATH
    assert config.output_path == "director-node/outputs"
    assert config.image_aspect_ratio == "16:9"
    assert config.default_video_model == "MiniMax-Hailuo-2.3"
    assert config.strict_input_handles is False
    assert config.log_level == "INFO"


def test_load_runtime_and_storage_sections(tmp_path):
    path = write_config(
        tmp_path / "configuration.json",
        {
            "runtime": {"image_size": "4K", "strict_input_handles": True},
            "storage": {"path": str(tmp_path / "store"), "bucket": "media"},
        },
    )

    config = RuntimeConfig.load(path)

    assert config.image_size == "4K"
    assert config.strict_input_handles is True
    assert config.storage_path == tmp_path / "store"
    assert config.bucket == "media"


def test_load_logging_section(tmp_path):
    path = write_config(
        tmp_path / "configuration.json", {"logging": {"level": "DEBUG", "format": "json"}}
    )

    config = RuntimeConfig.load(path)

    assert config.log_level == "DEBUG"
    assert config.log_format == "json"


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = write_config(
        tmp_path / "configuration.json",
        {
            "storage": {"path": str(tmp_path / "from-file"), "bucket": "from-file"},
            "logging": {"level": "WARNING"},
        },
    )
    monkeypatch.setenv("DIRECTOR_NODE_STORAGE_PATH", str(tmp_path / "from-env"))
    monkeypatch.setenv("R2_BUCKET", "from-env")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = RuntimeConfig.load(path)

    assert config.storage_path == tmp_path / "from-env"
    assert config.bucket == "from-env"
    assert config.log_level == "DEBUG"


def test_default_file_is_read(tmp_path, monkeypatch):
    path = write_config(tmp_path / "default.json", {"logging": {"format": "json"}})
    monkeypatch.setattr(config_module, "CONFIG_FILE", path)

    assert config_module.get_log_format() == "json"
