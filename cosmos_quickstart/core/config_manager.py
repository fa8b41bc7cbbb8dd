"""
Configuration management for Cosmos Quickstart.

Handles loading, validation, and access to configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator, ValidationError, ConfigDict

logger = logging.getLogger(__name__)

ENDPOINT_ENV = "COSMOS_DB_ENDPOINT_URI"
KEY_ENV = "COSMOS_ACCOUNT_PRIMARY_KEY"
REDACTED = "***REDACTED***"


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackendType(str, Enum):
    """Supported document store backends."""
    AZURE = "azure"
    MEMORY = "memory"


class CosmosConfig(BaseModel):
    """Document store connection and scenario settings."""
    backend: StoreBackendType = StoreBackendType.AZURE
    endpoint: Optional[str] = Field(default=None, description="Account endpoint URI")
    key: Optional[str] = Field(default=None, description="Account primary key")
    database_id: str = "FamilyDatabase"
    container_id: str = "FamilyContainer"
    partition_key_path: str = "/LastName"
    throughput: int = Field(default=400, ge=400, description="Provisioned throughput in RU/s")
    optimistic_concurrency: bool = Field(
        default=False,
        description="Send the etag read before a replace as an If-Match precondition"
    )
    query_page_size: Optional[int] = Field(default=None, ge=1)

    @field_validator("partition_key_path")
    @classmethod
    def validate_partition_key_path(cls, v: str) -> str:
        """Validate partition key path."""
        if not v.startswith("/") or len(v) < 2:
            raise ValueError(f"Partition key path must start with '/': {v}")
        return v

    @field_validator("database_id", "container_id")
    @classmethod
    def validate_resource_id(cls, v: str) -> str:
        """Validate database and container IDs."""
        if not v:
            raise ValueError("Resource ID cannot be empty")
        if len(v) > 255:
            raise ValueError("Resource ID must be 255 characters or less")
        if any(c in v for c in "/\\?#"):
            raise ValueError(f"Resource ID cannot contain '/', '\\', '?' or '#': {v}")
        return v

    @model_validator(mode="after")
    def validate_endpoint(self) -> "CosmosConfig":
        """The Azure backend needs an account endpoint."""
        if self.backend == StoreBackendType.AZURE and not self.endpoint:
            raise ValueError(
                f"An endpoint is required for the azure backend; set {ENDPOINT_ENV} "
                "or use the memory backend"
            )
        return self

    model_config = ConfigDict(use_enum_values=True)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "text"
    file: Optional[str] = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, description="Log file size that triggers rotation")
    backup_count: int = Field(default=5, ge=0)
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'azure': 'WARNING'}"
    )

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class QuickstartConfig(BaseModel):
    """Main Cosmos Quickstart configuration schema."""

    version: str = Field(default="0.1.0", description="Configuration version")

    cosmos: CosmosConfig = Field(default_factory=lambda: CosmosConfig(backend=StoreBackendType.MEMORY))

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

    def redacted_dump(self) -> Dict[str, Any]:
        """Dump the configuration with the account key redacted."""
        config_dict = self.model_dump(mode="json")
        if config_dict["cosmos"].get("key"):
            config_dict["cosmos"]["key"] = REDACTED
        return config_dict


class ConfigManager:
    """
    Manages Cosmos Quickstart configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (COSMOS_DB_ENDPOINT_URI, COSMOS_ACCOUNT_PRIMARY_KEY,
       COSMOS_QUICKSTART_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[QuickstartConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> QuickstartConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated QuickstartConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.info("Loading Cosmos Quickstart configuration")

        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.info(f"Applied {len(cli_overrides)} CLI argument overrides")

        # An endpoint with no explicit backend means a real account
        cosmos = config_dict.setdefault("cosmos", {})
        if "backend" not in cosmos:
            cosmos["backend"] = (
                StoreBackendType.AZURE.value if cosmos.get("endpoint") else StoreBackendType.MEMORY.value
            )

        try:
            self._config = QuickstartConfig(**config_dict)
            logger.info("Configuration validated successfully")
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                data = yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {file_path}")
        return data

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Connection settings
        if endpoint := os.getenv(ENDPOINT_ENV):
            config.setdefault("cosmos", {})["endpoint"] = endpoint
        if key := os.getenv(KEY_ENV):
            config.setdefault("cosmos", {})["key"] = key
        if backend := os.getenv("COSMOS_QUICKSTART_BACKEND"):
            config.setdefault("cosmos", {})["backend"] = backend.lower()
        if database := os.getenv("COSMOS_QUICKSTART_DATABASE"):
            config.setdefault("cosmos", {})["database_id"] = database
        if container := os.getenv("COSMOS_QUICKSTART_CONTAINER"):
            config.setdefault("cosmos", {})["container_id"] = container

        # Logging configuration
        if log_level := os.getenv("COSMOS_QUICKSTART_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_file := os.getenv("COSMOS_QUICKSTART_LOG_FILE"):
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

    def _log_configuration(self) -> None:
        """Log the loaded configuration (with the account key redacted)."""
        if not self._config:
            return

        logger.debug(f"Active configuration: {json.dumps(self._config.redacted_dump(), indent=2)}")

    def get_config(self) -> QuickstartConfig:
        """
        Get the loaded configuration.

        Returns:
            QuickstartConfig instance

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> QuickstartConfig:
        """
        Reload configuration from the same sources.

        Returns:
            Reloaded QuickstartConfig instance
        """
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
