"""Core module initialization."""

from .config_manager import (
    ConfigManager,
    TableStorageConfig,
    StorageSettings,
    RepositorySettings,
    LoggingConfig,
)
from .logging_config import setup_logging, log_with_context

__all__ = [
    "ConfigManager",
    "TableStorageConfig",
    "StorageSettings",
    "RepositorySettings",
    "LoggingConfig",
    "setup_logging",
    "log_with_context",
]
