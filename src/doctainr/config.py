"""
Configuration management for doctainr.

This module provides configuration file support with YAML format and
default settings.

Features:
- YAML configuration file at $XDG_CONFIG_HOME/doctainr/config.yaml
  (~/.config/doctainr/config.yaml by default)
- Default values with user overrides
- Docker endpoint override (falls back to DOCKER_HOST)
- Auto-refresh interval and theme for the UI
- Log level and location override

Architecture:
- ConfigManager: Main configuration interface
- Merges user config with defaults
- Provides typed access to settings
- Handles missing/invalid config gracefully
"""

import os
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .state import resolve_docker_host

logger = logging.getLogger(__name__)


@dataclass
class DockerConfig:
    """Docker-related configuration."""
    host: Optional[str] = None  # None: DOCKER_HOST, then the local socket


@dataclass
class UIConfig:
    """UI-related configuration."""
    refresh_interval: float = 5.0  # seconds, 0 disables auto refresh
    theme: str = "textual-dark"


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file_path: Optional[str] = None  # None for default
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class AppConfig:
    """Main application configuration."""
    docker: DockerConfig = field(default_factory=DockerConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def default_config_dir() -> Path:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / "doctainr"


class ConfigManager:
    """Configuration manager with YAML file support."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "config.yaml"
        self._config: AppConfig = AppConfig()

    def load_config(self) -> AppConfig:
        """Load configuration from YAML file, creating it on first run."""
        try:
            if self.config_file.exists():
                with open(self.config_file, "r") as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise ValueError("top level of config must be a mapping")

                self._config = self._merge_configs(AppConfig(), user_config)
                logger.debug(f"Loaded configuration from {self.config_file}")
            else:
                self._config = AppConfig()
                self.save_config()
                logger.info(f"Created default configuration at {self.config_file}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}, using defaults")
            self._config = AppConfig()
        return self._config

    def save_config(self) -> None:
        """Save current configuration to YAML file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(asdict(self._config), f, default_flow_style=False, indent=2)
            logger.debug(f"Saved configuration to {self.config_file}")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def get_config(self) -> AppConfig:
        return self._config

    def _merge_configs(self, default: AppConfig, user: Dict[str, Any]) -> AppConfig:
        for section in ("docker", "ui", "logging"):
            updates = user.get(section)
            if isinstance(updates, dict):
                self._merge_dataclass(getattr(default, section), updates)
        return default

    def _merge_dataclass(self, obj: Any, updates: Dict[str, Any]) -> None:
        for key, value in updates.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

    def get_docker_host(self) -> str:
        """Endpoint the adapter connects to: config, then DOCKER_HOST, then the local socket."""
        return resolve_docker_host(self._config.docker.host)

    def get_refresh_interval(self) -> float:
        try:
            return max(0.0, float(self._config.ui.refresh_interval))
        except (TypeError, ValueError):
            return UIConfig.refresh_interval

    def get_theme(self) -> str:
        return self._config.ui.theme

    def get_log_level(self) -> str:
        return str(self._config.logging.level).upper()

    def get_custom_log_path(self) -> Optional[str]:
        return self._config.logging.file_path


# Global config instance
config_manager = ConfigManager()
