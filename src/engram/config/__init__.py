"""Configuration for the Engram memory engine."""

from engram.config.loader import ConfigurationLoader, load_config
from engram.config.settings import MemoryConfig

__all__ = ["ConfigurationLoader", "MemoryConfig", "load_config"]
