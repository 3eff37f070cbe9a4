"""Configuration management for Jar Tracker."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    db_name: str = "jartracker.db"
    backup_enabled: bool = True
    backup_keep: int = 10

    @property
    def db_path(self) -> Path:
        """Full path to the SQLite database file."""
        return self.storage_dir / self.db_name

    @property
    def backup_dir(self) -> Path:
        """Directory that holds timestamped backup files."""
        return self.storage_dir / "backups"


@dataclass
class DefaultsConfig:
    """Default values configuration."""

    category: str = "Other"
    location: str | None = None


@dataclass
class InventoryConfig:
    """Stock level configuration."""

    low_stock_threshold: int = 2
    max_batch_quantity: int = 100


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    defaults: DefaultsConfig
    inventory: InventoryConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def defaults(self) -> DefaultsConfig:
        """Get defaults configuration."""
        return self._config.defaults

    @property
    def inventory(self) -> InventoryConfig:
        """Get inventory configuration."""
        return self._config.inventory

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._config.logging

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "jar-tracker" / "config.toml",
            Path.home() / ".jar-tracker" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "jar-tracker" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        data_section = data.get("data", {})
        defaults_section = data.get("defaults", {})
        inventory_section = data.get("inventory", {})

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data_section.get("storage_dir", "~/jar-tracker/data")
                ).expanduser(),
                db_name=data_section.get("db_name", "jartracker.db"),
                backup_enabled=data_section.get("backup_enabled", True),
                backup_keep=data_section.get("backup_keep", 10),
            ),
            defaults=DefaultsConfig(
                category=defaults_section.get("category", "Other"),
                location=defaults_section.get("location"),
            ),
            inventory=InventoryConfig(
                low_stock_threshold=inventory_section.get("low_stock_threshold", 2),
                max_batch_quantity=inventory_section.get("max_batch_quantity", 100),
            ),
            logging=LoggingConfig(
                level=data.get("logging", {}).get("level", "WARNING"),
            ),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "jar-tracker" / "data"),
            defaults=DefaultsConfig(),
            inventory=InventoryConfig(),
            logging=LoggingConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'inventory.low_stock_threshold'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default
