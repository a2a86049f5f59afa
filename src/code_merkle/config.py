"""Configuration management for Code Merkle."""

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field

from . import CMK_DIR, CONFIG_FILE, DEFAULT_IGNORE_FILE


class CMKConfig(BaseModel):
    """Configuration for Code Merkle."""

    version: int = 1
    # Case-insensitive extension allow-list; empty means every file
    extensions: list[str] = Field(default_factory=list)
    exclude_patterns: list[str] = Field(
        default=[
            "node_modules",
            "__pycache__",
            "venv",
            ".venv",
            "dist",
            "build",
            "*.egg-info",
        ]
    )
    ignore_filename: str = DEFAULT_IGNORE_FILE
    hash_workers: int | None = Field(default=None, ge=1)


def get_cmk_dir(project_root: Path) -> Path:
    """Get the .code-merkle directory path."""
    return project_root / CMK_DIR


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return get_cmk_dir(project_root) / CONFIG_FILE


def load_config(project_root: Path) -> CMKConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        config = CMKConfig.model_validate(data)
    else:
        config = CMKConfig()

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config


def save_config(config: CMKConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def _apply_env_overrides(config: CMKConfig) -> CMKConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    # CMK_EXTENSIONS=".py,.ts"
    if extensions := os.environ.get("CMK_EXTENSIONS"):
        data["extensions"] = [ext.strip() for ext in extensions.split(",") if ext.strip()]

    # CMK_HASH_WORKERS
    if workers := os.environ.get("CMK_HASH_WORKERS"):
        data["hash_workers"] = workers

    return CMKConfig.model_validate(data)
