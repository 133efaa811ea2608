"""Configuration module for chatbudget."""

from chatbudget.config.loader import get_config_path, load_config
from chatbudget.config.schema import CompressionConfig, Config

__all__ = ["CompressionConfig", "Config", "get_config_path", "load_config"]
