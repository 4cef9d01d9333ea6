"""Configuration models and YAML loading."""

from convmem.config.loader import ConfigError, apply_logging_config, load_config, save_config
from convmem.config.schema import ConvmemConfig

__all__ = [
    "ConfigError",
    "ConvmemConfig",
    "apply_logging_config",
    "load_config",
    "save_config",
]
