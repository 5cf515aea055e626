"""Shared director node configuration utilities.

Centralises reading of ~/.director-node/configuration.json so that the
worker, the CLI and tests share one implementation. Environment variables
override file values.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

CONFIG_FILE = Path.home() / ".director-node" / "configuration.json"

DEFAULT_STORAGE_PATH = Path.home() / ".director-node" / "store"
DEFAULT_OUTPUT_PATH = "director-node/outputs"


def get_file_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from ~/.director-node/configuration.json."""
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_storage_path() -> Path:
    """Return the store directory, preferring DIRECTOR_NODE_STORAGE_PATH."""
    env_path = os.environ.get("DIRECTOR_NODE_STORAGE_PATH")
    if env_path:
        return Path(env_path)
    configured = get_file_config().get("storage", {}).get("path")
    return Path(configured) if configured else DEFAULT_STORAGE_PATH


def get_bucket() -> str:
    """Return the object storage bucket name recorded on assets."""
    return os.environ.get("R2_BUCKET") or get_file_config().get("storage", {}).get(
        "bucket", "monetiqai"
    )


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL") or get_file_config().get("logging", {}).get(
        "level", "INFO"
    )


def get_log_format() -> str:
    return os.environ.get("LOG_FORMAT") or get_file_config().get("logging", {}).get(
        "format", "auto"
    )


# ---------------------------------------------------------------------------
# RuntimeConfig – shared by the worker, dispatch and CLI
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Runtime configuration loaded from ~/.director-node/configuration.json."""

    storage_path: Path = field(default_factory=get_storage_path)
    output_path: str = DEFAULT_OUTPUT_PATH
    bucket: str = field(default_factory=get_bucket)

    image_aspect_ratio: str = "16:9"
    image_size: str = "2K"
    default_video_model: str = "MiniMax-Hailuo-2.3"

    # Raise on unmapped target handles instead of using the raw handle id
    strict_input_handles: bool = False

    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)

    @classmethod
    def load(cls, path: Path | None = None) -> "RuntimeConfig":
        """Build a config from a specific file, keeping env overrides on top."""
        data = get_file_config(path)
        runtime = data.get("runtime", {})
        config = cls()
        for key in (
            "output_path",
            "image_aspect_ratio",
            "image_size",
            "default_video_model",
            "strict_input_handles",
        ):
            if key in runtime:
                setattr(config, key, runtime[key])
        storage = data.get("storage", {})
        if "path" in storage and not os.environ.get("DIRECTOR_NODE_STORAGE_PATH"):
            config.storage_path = Path(storage["path"])
        if "bucket" in storage and not os.environ.get("R2_BUCKET"):
            config.bucket = storage["bucket"]
        logging_cfg = data.get("logging", {})
        if "level" in logging_cfg and not os.environ.get("LOG_LEVEL"):
            config.log_level = logging_cfg["level"]
        if "format" in logging_cfg and not os.environ.get("LOG_FORMAT"):
            config.log_format = logging_cfg["format"]
        return config
