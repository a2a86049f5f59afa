"""Unit tests for configuration loading and environment overrides."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from code_merkle import DEFAULT_IGNORE_FILE
from code_merkle.config import CMKConfig, get_config_path, load_config, save_config


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("CMK_EXTENSIONS", raising=False)
    monkeypatch.delenv("CMK_HASH_WORKERS", raising=False)


def test_defaults_when_missing(tmp_path: Path):
    config = load_config(tmp_path)
    assert config.extensions == []
    assert config.ignore_filename == DEFAULT_IGNORE_FILE
    assert "node_modules" in config.exclude_patterns
    assert config.hash_workers is None


def test_save_and_load(tmp_path: Path):
    save_config(CMKConfig(extensions=[".py"], hash_workers=4), tmp_path)

    assert get_config_path(tmp_path).exists()
    config = load_config(tmp_path)
    assert config.extensions == [".py"]
    assert config.hash_workers == 4


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    save_config(CMKConfig(extensions=[".py"]), tmp_path)
    monkeypatch.setenv("CMK_EXTENSIONS", ".ts, .tsx,")
    monkeypatch.setenv("CMK_HASH_WORKERS", "3")

    config = load_config(tmp_path)
    assert config.extensions == [".ts", ".tsx"]
    assert config.hash_workers == 3


def test_invalid_worker_count_rejected():
    with pytest.raises(ValidationError):
        CMKConfig(hash_workers=0)
