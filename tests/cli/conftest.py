"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Provide a temporary config file path."""
    return tmp_path / "convmem.yaml"


@pytest.fixture
def prompts_dir(tmp_path: Path) -> Path:
    """Provide a prompt directory with two skills."""
    directory = tmp_path / "prompts"
    directory.mkdir()
    (directory / "general.md").write_text("You are a helpful assistant.")
    (directory / "dsa.md").write_text("You teach algorithms in {programming_language}.")
    return directory
