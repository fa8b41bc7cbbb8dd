"""Core module initialization."""

from .config_manager import ConfigManager, QuickstartConfig, CosmosConfig
from .logging_config import setup_logging, get_logger

__all__ = [
    "ConfigManager",
    "QuickstartConfig",
    "CosmosConfig",
    "setup_logging",
    "get_logger",
]
