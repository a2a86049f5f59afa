"""Shared test fixtures for code-merkle."""

import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner

from code_merkle import CMK_DIR
from code_merkle.config import CMKConfig, save_config
from code_merkle.hasher import FileHashEntry


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def sample_project():
    """Path to the fixture sample project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


def setup_cmk_project(project_root: Path, config: CMKConfig | None = None) -> CMKConfig:
    """Initialize a cmk project at the given path without going through the CLI.

    Args:
        project_root: Path to the project root
        config: Optional config to use (defaults to all files)

    Returns:
        The config that was saved
    """
    if config is None:
        config = CMKConfig()

    (project_root / CMK_DIR).mkdir(parents=True, exist_ok=True)
    save_config(config, project_root)
    return config


def entries(mapping: dict[str, str]) -> list[FileHashEntry]:
    """Build tree input from a {path: digest} mapping."""
    return [FileHashEntry(path=path, digest=digest) for path, digest in mapping.items()]


@pytest.fixture
def initialized_project(tmp_path: Path) -> Path:
    """A temporary empty project with cmk initialized."""
    setup_cmk_project(tmp_path)
    return tmp_path


@pytest.fixture
def project(tmp_path: Path, sample_project: Path) -> Path:
    """A copy of the sample project with cmk initialized."""
    project = tmp_path / "project"
    shutil.copytree(sample_project, project)
    setup_cmk_project(project)
    return project
