"""
Configuration module for the conversation memory manager.

Provides Pydantic-based settings management with YAML file support
and environment variable overrides.
"""

from convo_memory.config.settings import (
    Settings,
    MemorySettings,
    StorageSettings,
    LoggingSettings,
)
from convo_memory.config.loader import (
    load_config,
    get_default_config_path,
)

__all__ = [
    "Settings",
    "MemorySettings",
    "StorageSettings",
    "LoggingSettings",
    "load_config",
    "get_default_config_path",
]
