"""Configuration loading and validation."""

import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from convmem.config.schema import ConvmemConfig


DEFAULT_CONFIG_PATH = Path.home() / ".convmem" / "convmem.yaml"
LOGGER_NAME = "convmem"


class ConfigError(Exception):
    """Configuration loading or validation error."""


def load_config(path: Optional[Path] = None) -> ConvmemConfig:
    """Load and validate convmem configuration from YAML file.

    Args:
        path: Path to config file. If None, tries default location.
              If file doesn't exist, returns default config.

    Returns:
        Validated configuration object

    Raises:
        ConfigError: If config file exists but is invalid
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    # Zero-config mode: if file doesn't exist, use all defaults
    if not path.exists():
        return ConvmemConfig()

    try:
        with open(path, "r") as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            return ConvmemConfig()

        if not isinstance(config_data, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")

        return ConvmemConfig(**config_data)

    except ConfigError:
        raise
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def save_config(config: ConvmemConfig, path: Optional[Union[str, Path]] = None) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration object to save
        path: Destination path (string or Path object). If None, uses default location.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    elif isinstance(path, str):
        path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump()

    with open(path, "w") as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)


def apply_logging_config(config: ConvmemConfig, verbose: bool = False) -> int:
    """Set the level of the ``convmem`` logger hierarchy from ``logging.level``.

    Args:
        config: Loaded configuration
        verbose: Force DEBUG regardless of the configured level

    Returns:
        Numeric level applied
    """
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level)
    logging.getLogger(LOGGER_NAME).setLevel(level)
    return level
