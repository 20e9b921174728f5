"""Configuration management via pydantic-settings.

Values come from environment variables, then a ``.env`` file, then an optional
YAML file, then the defaults below. The YAML file keeps the nested layout::

    discord:
      token: ...
      channel: ...
    dmsguild:
      affiliate: "563484"
      keywords: "fantasy%20grounds"
      title_filter: "Fantasy Grounds"
    settings:
      minutes: 15
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from core.errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")

YAML_KEYS = {
    ("discord", "token"): "discord_token",
    ("discord", "channel"): "discord_channel_id",
    ("dmsguild", "affiliate"): "dmg_affiliate_id",
    ("dmsguild", "keywords"): "dmg_search_keywords",
    ("dmsguild", "title_filter"): "dmg_title_filter",
    ("settings", "minutes"): "check_minutes",
    ("settings", "fetch_timeout_seconds"): "fetch_timeout_seconds",
    ("settings", "send_timeout_seconds"): "send_timeout_seconds",
    ("settings", "log_level"): "log_level",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Discord
    discord_token: str = Field(min_length=1)
    discord_channel_id: int

    # DMs Guild
    dmg_affiliate_id: str = "563484"
    dmg_search_keywords: str = "fantasy%20grounds"
    dmg_title_filter: str = ""

    # Scheduling
    check_minutes: int = Field(default=15, gt=0)
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    send_timeout_seconds: float = Field(default=30.0, gt=0)

    # Logging
    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values are passed as init kwargs and the environment overrides them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def flatten_yaml(data: dict[str, Any]) -> dict[str, Any]:
    flat = {}
    for (section, key), field_name in YAML_KEYS.items():
        values = data.get(section) or {}
        if not isinstance(values, dict):
            raise ConfigError(f"YAML section '{section}' must be a mapping")
        if key in values and values[key] is not None:
            flat[field_name] = values[key]
    return flat


def read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        log.info(f"No config file at {path}, using environment only")
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a YAML mapping")
    return flatten_yaml(data)


def load_settings(path: Path | str | None = None) -> Settings:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    values = read_yaml(config_path)
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
