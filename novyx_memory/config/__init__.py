"""Configuration module."""

from novyx_memory.config.loader import ConfigError, load_config
from novyx_memory.config.schema import MemoryConfig

__all__ = ["ConfigError", "MemoryConfig", "load_config"]
