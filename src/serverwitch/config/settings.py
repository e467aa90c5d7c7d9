"""Configuration management for serverwitch.

Loads settings from a YAML configuration file with environment variable
overrides (``SERVERWITCH_`` prefix). Supports .env files.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/serverwitch.yaml")
DEFAULT_SERVER_URL = "wss://serverwitch.dev"
DEFAULT_LOG_FILE = "serverwitch.log"


class RelayConfig(BaseModel):
    url: str = Field(default=DEFAULT_SERVER_URL, description="URL of the relay server")
    session_path: str = Field(default="/session")
    keepalive_interval: float = Field(default=20.0, gt=0)
    keepalive_payload: str = Field(default="keepalive")
    max_concurrency: int = Field(default=100, gt=0)
    open_timeout: float = Field(default=10.0, gt=0)


class RunnerConfig(BaseModel):
    shell: str = Field(default="/bin/bash")
    shell_args: list[str] = Field(default_factory=lambda: ["-c"])


class UIConfig(BaseModel):
    tick_interval: float = Field(default=1.0, gt=0)
    mailbox_size: int = Field(default=100, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=DEFAULT_LOG_FILE)
    console: bool = Field(default=False, description="Also log to stderr")


class Settings(BaseSettings):
    """Root configuration for serverwitch.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "SERVERWITCH_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # DANGEROUS: run every action without asking
    no_confirm: bool = Field(default=False)

    # Configuration sections
    relay: RelayConfig = Field(default_factory=RelayConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs and must not shadow the environment
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)
