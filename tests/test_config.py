"""Tests for configuration loading and validation."""

import logging
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml

from convmem.config.loader import ConfigError, apply_logging_config, load_config, save_config
from convmem.config.schema import ConvmemConfig, SessionConfig


def test_default_config():
    """Test that default config has expected values."""
    config = ConvmemConfig()

    assert config.session.max_memory_size == 1000
    assert config.session.compression_threshold == 800
    assert config.session.default_skill == "general"

    assert config.maintenance.compression_enabled is True
    assert config.maintenance.system_event_max_age_hours == 24.0
    assert config.maintenance.consolidation_window_ms == 60_000
    assert config.maintenance.compression_age_hours == 2.0
    assert config.maintenance.compression_length == 100
    assert config.maintenance.compression_marker == "...[compressed]"

    assert config.prompts.language_skills == ["dsa"]
    assert config.logging.level == "INFO"


def test_load_config_nonexistent_returns_defaults():
    """Test that loading a nonexistent config returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config = load_config(Path(tmpdir) / "nonexistent.yaml")

        assert config.session.max_memory_size == 1000


def test_load_config_empty_file_returns_defaults(tmp_path):
    """Test that an empty config file returns defaults."""
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")

    assert load_config(config_path) == ConvmemConfig()


def test_load_config_partial_override(tmp_path):
    """Test that partial config overrides only specified values."""
    config_path = tmp_path / "partial.yaml"
    with open(config_path, "w") as f:
        yaml.safe_dump({"session": {"max_memory_size": 50}, "logging": {"level": "DEBUG"}}, f)

    config = load_config(config_path)

    # Overridden values
    assert config.session.max_memory_size == 50
    assert config.logging.level == "DEBUG"

    # Default values
    assert config.session.compression_threshold == 800
    assert config.maintenance.compression_length == 100


def test_load_config_invalid_yaml(tmp_path):
    """Test that invalid YAML raises ConfigError."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("session: [unclosed")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(config_path)


def test_load_config_validation_error(tmp_path):
    """Test that out-of-range values raise ConfigError."""
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("session:\n  max_memory_size: 0\n")

    with pytest.raises(ConfigError, match="validation failed"):
        load_config(config_path)


def test_load_config_non_mapping(tmp_path):
    """Test that a list at the top level is rejected."""
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- one\n- two\n")

    with pytest.raises(ConfigError, match="must be a mapping"):
        load_config(config_path)


def test_invalid_log_level():
    """Test that unknown log levels are rejected by the schema."""
    with pytest.raises(ValueError):
        ConvmemConfig(logging={"level": "TRACE"})


def test_session_config_rejects_non_positive():
    """Test that sizes must be positive."""
    with pytest.raises(ValueError):
        SessionConfig(compression_threshold=-1)


def test_save_and_reload(tmp_path):
    """Test that a saved config loads back unchanged."""
    config = ConvmemConfig()
    config.session.max_memory_size = 200
    config.prompts.directory = str(tmp_path / "prompts")
    config_path = tmp_path / "nested" / "convmem.yaml"

    save_config(config, str(config_path))

    assert config_path.exists()
    assert load_config(config_path) == config


def test_apply_logging_config_sets_package_level():
    """Test the configured level is applied to the convmem loggers."""
    package_logger = logging.getLogger("convmem")
    previous = package_logger.level
    try:
        config = ConvmemConfig(logging={"level": "WARNING"})
        assert apply_logging_config(config) == logging.WARNING
        assert logging.getLogger("convmem.memory.manager").getEffectiveLevel() == logging.WARNING

        assert apply_logging_config(config, verbose=True) == logging.DEBUG
        assert package_logger.level == logging.DEBUG
    finally:
        package_logger.setLevel(previous)
