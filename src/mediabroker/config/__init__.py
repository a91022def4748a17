"""Configuration management for mediabroker.

This module provides configuration loading with precedence handling:
1. Explicit arguments / CLI flags (highest priority)
2. Environment variables (MEDIABROKER_*)
3. Config file (~/.mediabroker/config.toml)
4. Default values (lowest priority)
"""

from mediabroker.config.env import EnvReader
from mediabroker.config.loader import (
    ConfigError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from mediabroker.config.models import (
    BrokerConfig,
    DownloadConfig,
    LoggingConfig,
    SupervisorConfig,
    ToolPathsConfig,
)

__all__ = [
    # Models
    "BrokerConfig",
    "DownloadConfig",
    "LoggingConfig",
    "SupervisorConfig",
    "ToolPathsConfig",
    # Loader
    "ConfigError",
    "EnvReader",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
