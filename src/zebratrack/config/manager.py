"""Configuration manager reading a YAML file with environment variable fallback."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ..exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = "~/.config/zebra/config.yaml"


@dataclass
class ZebraConfig:
    base_uri: str = ""
    token: str = ""
    timeout: int = 30


@dataclass
class StorageConfig:
    data_dir: str = "~/.zebra"
    log_dir: str = "~/.zebra/logs"


@dataclass
class UserConfig:
    id: Optional[int] = None
    default_role_id: Optional[int] = None
    roles: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SyncConfig:
    days_back: int = 7
    log_level: str = "INFO"
    metrics_dir: Optional[str] = None


@dataclass
class AppConfig:
    zebra: ZebraConfig
    storage: StorageConfig
    user: UserConfig
    sync: SyncConfig

    def validate(self) -> tuple[bool, list[str]]:
        """Validate required configuration fields.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors: list[str] = []

        if not self.zebra.base_uri:
            errors.append("zebra.base_uri is required (or ZEBRA_BASE_URI)")
        if not self.zebra.token:
            errors.append("zebra.token is required (or ZEBRA_TOKEN)")
        if self.sync.days_back < 0:
            errors.append("sync.days_back must not be negative")
        known: set[int] = set()
        for index, role in enumerate(self.user.roles):
            try:
                known.add(int(role["id"]))
            except (TypeError, KeyError, ValueError):
                errors.append(f"user.roles[{index}] must be a mapping with a numeric id")
        if self.user.default_role_id is not None and known:
            if self.user.default_role_id not in known:
                errors.append(
                    f"user.default_role_id {self.user.default_role_id} is not one of user.roles"
                )

        return len(errors) == 0, errors


class ConfigManager:
    """Configuration from a YAML file, falling back to environment variables."""

    ENV_MAPPINGS = {
        "zebra.base_uri": "ZEBRA_BASE_URI",
        "zebra.token": "ZEBRA_TOKEN",
        "zebra.timeout": "ZEBRA_TIMEOUT",
        "storage.data_dir": "ZEBRA_DATA_DIR",
        "storage.log_dir": "ZEBRA_LOG_DIR",
        "user.id": "ZEBRA_USER_ID",
        "user.default_role_id": "ZEBRA_DEFAULT_ROLE_ID",
        "sync.days_back": "SYNC_DAYS_BACK",
        "sync.log_level": "LOG_LEVEL",
        "sync.metrics_dir": "METRICS_DIR",
    }
    INT_KEYS = ("zebra.timeout", "user.id", "user.default_role_id", "sync.days_back")

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to the YAML (or JSON) configuration file
        """
        self.path = Path(
            config_path or os.getenv("ZEBRA_CONFIG", DEFAULT_CONFIG_PATH)
        ).expanduser()
        self.data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid configuration file {self.path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {self.path} must contain a mapping")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with environment variable fallback.

        Args:
            key: Dotted configuration key (e.g., 'zebra.base_uri')
            default: Default value if not found

        Returns:
            Configuration value
        """
        value: Any = self.data
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                value = None
                break
            value = value[part]

        if value is None and key in self.ENV_MAPPINGS:
            value = os.getenv(self.ENV_MAPPINGS[key])

        if value is None:
            return default

        if key in self.INT_KEYS:
            try:
                return int(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e
        return value

    def load_app_config(self) -> AppConfig:
        """Load complete application configuration.

        Returns:
            AppConfig instance with all configuration sections
        """
        zebra_config = ZebraConfig(
            base_uri=self.get("zebra.base_uri", ""),
            token=self.get("zebra.token", ""),
            timeout=self.get("zebra.timeout", 30),
        )

        storage_config = StorageConfig(
            data_dir=self.get("storage.data_dir", "~/.zebra"),
            log_dir=self.get("storage.log_dir", "~/.zebra/logs"),
        )

        # user.defaultRole.id is the older nested spelling
        default_role_id = self.get("user.default_role_id")
        if default_role_id is None:
            nested = self.get("user.defaultRole.id")
            default_role_id = int(nested) if nested is not None else None

        user_config = UserConfig(
            id=self.get("user.id"),
            default_role_id=default_role_id,
            roles=list(self.get("user.roles", []) or []),
        )

        sync_config = SyncConfig(
            days_back=self.get("sync.days_back", 7),
            log_level=self.get("sync.log_level", "INFO"),
            metrics_dir=self.get("sync.metrics_dir"),
        )

        return AppConfig(
            zebra=zebra_config,
            storage=storage_config,
            user=user_config,
            sync=sync_config,
        )
