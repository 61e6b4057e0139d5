"""
Configuration management for tablestorage.

Handles loading, validation, and access to configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from tablestorage.core.logging_config import setup_logging
from tablestorage.storage.backend import MAX_SEGMENT_SIZE
from tablestorage.storage.models import TableNameValidator

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "json"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'tablestorage.repository': 'DEBUG'}"
    )


class StorageSettings(BaseModel):
    """Storage backend configuration."""
    max_segment_size: int = Field(
        default=MAX_SEGMENT_SIZE,
        gt=0,
        description="Maximum number of entities returned by one store segment"
    )


class RepositorySettings(BaseModel):
    """Repository configuration."""
    table_name: str = Field(default="entities", description="Table the repository is bound to")

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        is_valid, error = TableNameValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return v


class TableStorageConfig(BaseModel):
    """Main configuration schema."""

    version: str = Field(default="0.1.0", description="Configuration version")

    storage: StorageSettings = Field(default_factory=StorageSettings)

    repository: RepositorySettings = Field(default_factory=RepositorySettings)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        parts = v.split(".")
        if len(parts) != 3:
            raise ValueError("Version must be in format x.y.z")
        for part in parts:
            if not part.isdigit():
                raise ValueError("Version components must be numeric")
        return v

    model_config = ConfigDict(use_enum_values=True)


class ConfigManager:
    """
    Manages configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. Explicit overrides
    2. Environment variables (TABLESTORAGE_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[TableStorageConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None
    ) -> TableStorageConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            overrides: Dictionary of explicit overrides

        Returns:
            Validated TableStorageConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if overrides:
            config_dict = self._merge_configs(config_dict, overrides)
            logger.info(f"Applied {len(overrides)} explicit overrides")

        try:
            self._config = TableStorageConfig(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.debug(f"Active configuration: {json.dumps(self._config.model_dump())}")
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        if table_name := os.getenv("TABLESTORAGE_TABLE_NAME"):
            config.setdefault("repository", {})["table_name"] = table_name
        if segment_size := os.getenv("TABLESTORAGE_MAX_SEGMENT_SIZE"):
            config.setdefault("storage", {})["max_segment_size"] = int(segment_size)

        if log_level := os.getenv("TABLESTORAGE_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := os.getenv("TABLESTORAGE_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format
        if log_file := os.getenv("TABLESTORAGE_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> TableStorageConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> TableStorageConfig:
        """Reload configuration from the same file and environment."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)

    def configure_logging(self) -> None:
        """Apply the logging section of the loaded configuration."""
        logging_config = self.get_config().logging
        setup_logging(
            level=logging_config.level,
            format_type=logging_config.format,
            log_file=logging_config.file,
            rotation_size=logging_config.rotation_size,
            rotation_count=logging_config.rotation_count,
            module_levels=logging_config.module_levels,
        )
