"""Configuration management for kanban-sync using YAML files."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".kanban-sync"

DEFAULTS: dict[str, str] = {
    "server.host": "127.0.0.1",
    "server.port": "5001",
    "server.cors_origins": "*",
    "client.endpoint": "ws://localhost:5001/ws",
    "client.snapshot_timeout": "3",
}

# Environment variables checked in order; the first one set wins over any file.
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "server.host": ("KANBAN_SYNC_HOST",),
    "server.port": ("KANBAN_SYNC_PORT", "PORT"),
    "server.cors_origins": ("KANBAN_SYNC_CORS_ORIGINS",),
    "client.endpoint": ("KANBAN_SYNC_ENDPOINT",),
    "client.snapshot_timeout": ("KANBAN_SYNC_SNAPSHOT_TIMEOUT",),
}


class Config:
    """Configuration manager using YAML file storage.

    Supports both local (directory-level) and global (user-level) configuration.
    Local config is stored in .kanban-sync/config.yaml in the current directory.
    Global config is stored in ~/.kanban-sync/config.yaml.

    When reading, values are looked up in local config first, then global config.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
            self.is_global = use_global
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
            self.is_global = True
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
            self.is_global = False

        self.config_file = self.config_dir / "config.yaml"
        self._config: dict[str, Any] = self._load()

        # For local config, also load global config as fallback
        self._global_config: dict[str, Any] = {}
        if not self.is_global:
            global_config_file = Path.home() / CONFIG_DIR_NAME / "config.yaml"
            if global_config_file.exists() and global_config_file != self.config_file:
                try:
                    with open(global_config_file, "r") as f:
                        self._global_config = yaml.safe_load(f) or {}
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("Failed to load global config", error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _load(self) -> dict[str, Any]:
        """Load configuration from YAML file.

        Returns:
            Configuration dictionary
        """
        if not self.config_file.exists():
            logger.debug("Config file does not exist, initializing empty config")
            return {}

        try:
            with open(self.config_file, "r") as f:
                config = yaml.safe_load(f) or {}
                logger.debug("Config loaded successfully", keys=list(config.keys()))
                return config
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

    def _save(self) -> None:
        """Save configuration to YAML file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
            logger.debug("Config saved successfully")
        except OSError as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a configuration value.

        Environment overrides win, then local config, then global config.

        Args:
            key: Configuration key
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        for env_var in ENV_OVERRIDES.get(key, ()):
            if os.environ.get(env_var):
                logger.debug("Getting config value from environment", key=key, env_var=env_var)
                return os.environ[env_var]

        if key in self._config:
            logger.debug("Getting config value from local", key=key)
            return str(self._config[key])

        if not self.is_global and key in self._global_config:
            logger.debug("Getting config value from global", key=key)
            return str(self._global_config[key])

        logger.debug("Config value not found", key=key)
        return default if default is not None else DEFAULTS.get(key)

    def set(self, key: str, value: str) -> None:
        """Set a configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        """Remove a configuration value.

        Args:
            key: Configuration key
        """
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, str]:
        """List all configuration settings stored in files.

        For local config, merges global config with local config (local takes precedence).

        Returns:
            Dictionary of all config settings
        """
        if self.is_global:
            return self._config.copy()
        merged = self._global_config.copy()
        merged.update(self._config)
        logger.debug("Listing merged config values", count=len(merged))
        return merged


@dataclass(frozen=True)
class ServerSettings:
    host: str
    port: int
    cors_origins: list[str]


@dataclass(frozen=True)
class ClientSettings:
    endpoint: str
    snapshot_timeout: float


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.

    Returns:
        Config instance
    """
    return Config(use_global=use_global)


def _number(config: Config, key: str, kind: type[int] | type[float]) -> Any:
    value = config.get(key)
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {key}: {value!r}") from e


def server_settings(config: Config | None = None) -> ServerSettings:
    """Resolve where the authority listens and which origins it accepts."""
    config = config or get_config()
    origins = [origin.strip() for origin in (config.get("server.cors_origins") or "").split(",") if origin.strip()]
    return ServerSettings(
        host=config.get("server.host") or DEFAULTS["server.host"],
        port=_number(config, "server.port", int),
        cors_origins=origins or ["*"],
    )


def client_settings(config: Config | None = None) -> ClientSettings:
    """Resolve where clients connect and how long they wait for the first snapshot."""
    config = config or get_config()
    return ClientSettings(
        endpoint=config.get("client.endpoint") or DEFAULTS["client.endpoint"],
        snapshot_timeout=_number(config, "client.snapshot_timeout", float),
    )
