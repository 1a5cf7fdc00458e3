"""Application configuration using pydantic-settings."""
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserConfig(BaseModel):
    """Persistent browser context configuration."""

    sessions_dir: Path = Path(".sessions")
    headless: bool = False
    default_timeout: int = 5000
    navigation_timeout: int = 30000


class StorageConfig(BaseModel):
    """Local JSON storage locations."""

    data_dir: Path = Path(".composer")
    settings_path: Path = Path("~/.composer/settings.json")

    @property
    def navigation_history_path(self) -> Path:
        return self.data_dir / "navigation-history.json"

    @property
    def generations_path(self) -> Path:
        return self.data_dir / "generations.json"


class LoggingConfig(BaseModel):
    """Log level and optional log file."""

    level: str = "INFO"
    file: Optional[Path] = None


class ApiConfig(BaseModel):
    """Control-plane API used to persist generations."""

    url: str = "http://localhost:3001/api"
    timeout: float = 30.0


class AppConfig(BaseSettings):
    """Application settings loaded from YAML or environment."""

    model_config = SettingsConfigDict(env_prefix="COMPOSER_", env_nested_delimiter="__")

    browser: BrowserConfig = BrowserConfig()
    storage: StorageConfig = StorageConfig()
    api: ApiConfig = ApiConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load settings from a YAML file.

        Missing files yield the defaults.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            AppConfig instance with loaded configuration.
        """
        if not path.exists():
            return cls()
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
