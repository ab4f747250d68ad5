"""Configuration management for the Olive Lifecycle Platform."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml


logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
PREFERENCES_FILENAME = "olive_lifecycle_preferences.json"
SESSION_FILENAME = "session.json"


@dataclass
class ConfigModel:
    """Process-wide configuration."""

    # Record source selection, decided once at process start
    use_mock_data: bool = True
    fixture_seed: int = 42

    # Remote API
    api_base_url: str = "http://localhost:5000"
    api_token: Optional[str] = None
    request_timeout: float = 30.0

    # Auth token shim
    secret_key: str = "olive-lifecycle-dev-secret-change-me"
    token_lifetime_hours: int = 24

    # Calendar deadlines
    deadline_window_days: int = 7
    deadline_urgent_days: int = 3

    # Display preferences
    date_format: str = "%Y-%m-%d"
    log_level: str = "WARNING"

    # File paths
    data_dir: str = "~/.olive_lifecycle"
    export_dir: str = "~/.olive_lifecycle/exports"

    def __post_init__(self):
        """Expand user paths and make sure directories exist."""
        self.data_dir = os.path.expanduser(self.data_dir)
        self.export_dir = os.path.expanduser(self.export_dir)

        Path(self.data_dir).mkdir(parents=True, exist_ok=True)

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {
            "use_mock_data": self.use_mock_data,
            "fixture_seed": self.fixture_seed,
            "api_base_url": self.api_base_url,
            "api_token": self.api_token,
            "request_timeout": self.request_timeout,
            "secret_key": self.secret_key,
            "token_lifetime_hours": self.token_lifetime_hours,
            "deadline_window_days": self.deadline_window_days,
            "deadline_urgent_days": self.deadline_urgent_days,
            "date_format": self.date_format,
            "log_level": self.log_level,
            "data_dir": self.data_dir,
            "export_dir": self.export_dir,
        }
        return yaml.dump(data, default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        return cls(**{key: value for key, value in data.items() if key in known})

    def get_config_path(self) -> Path:
        return Path(self.data_dir) / CONFIG_FILENAME

    def get_preferences_path(self) -> Path:
        return Path(self.data_dir) / PREFERENCES_FILENAME

    def get_session_path(self) -> Path:
        return Path(self.data_dir) / SESSION_FILENAME

    def get_export_path(self) -> Path:
        path = Path(self.export_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


class Config:
    """Configuration manager holding the process-wide ConfigModel."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file or create default."""
        if cls._instance is not None and config_path is None:
            return cls._instance

        config = ConfigModel()

        if config_path is None:
            config_path = config.get_config_path()
        config_path = Path(config_path)

        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    config = ConfigModel.from_yaml(f.read())
                logger.debug(f"Loaded configuration from {config_path}")
            except (yaml.YAMLError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
        else:
            cls.save(config, config_path)
            logger.info(f"Created default configuration at {config_path}")

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()
        config_path = Path(config_path)

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            f.write(config.to_yaml())
        logger.debug(f"Configuration saved to {config_path}")

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def set(cls, config: ConfigModel) -> None:
        """Install an explicit configuration (used by tests and the CLI)."""
        cls._instance = config

    @classmethod
    def reload(cls) -> ConfigModel:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load()


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
