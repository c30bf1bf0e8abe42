"""Configuration management module for zebratrack."""

from typing import Optional

from dotenv import load_dotenv

from .manager import (
    AppConfig,
    ConfigManager,
    StorageConfig,
    SyncConfig,
    UserConfig,
    ZebraConfig,
)

load_dotenv()


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load application configuration from file and environment."""
    return ConfigManager(config_path).load_app_config()


__all__ = [
    "AppConfig",
    "ConfigManager",
    "StorageConfig",
    "SyncConfig",
    "UserConfig",
    "ZebraConfig",
    "load_config",
]
