"""
Configuration management for plugdeck.

Precedence: env vars > .env file > config.yaml > defaults

Config file: ~/.plugdeck/config.yaml
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLUGDECK_"

# Known config keys that can be set via `plugdeck config set`
CONFIG_KEYS = {
    "home_dir", "data_dir", "default_tool", "skill_scope",
    "git_timeout", "log_level",
}


def _resolve_home_dir() -> Path:
    """Resolve the home directory from env or the user's home, before Settings init."""
    raw = os.environ.get(f"{ENV_PREFIX}HOME_DIR", "")
    if raw:
        return Path(raw).expanduser().resolve()
    return Path.home()


def get_config_path(home_dir: Path) -> Path:
    """Get the config.yaml path for a home directory."""
    return home_dir / ".plugdeck" / "config.yaml"


def load_yaml_config(home_dir: Path) -> dict[str, Any]:
    """Load config.yaml from ~/.plugdeck/config.yaml."""
    config_file = get_config_path(home_dir)
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"config.yaml is not a dict, ignoring: {config_file}")
            return {}
        return data
    except Exception as e:
        logger.warning(f"Error loading config.yaml: {e}")
        return {}


def save_yaml_config(home_dir: Path, data: dict[str, Any]) -> Path:
    """Write config values to ~/.plugdeck/config.yaml."""
    config_file = get_config_path(home_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return config_file


class Settings(BaseSettings):
    """Engine configuration. Precedence: env vars > .env > config.yaml > defaults."""

    home_dir: Path = Field(
        default_factory=Path.home,
        description="Directory that '~' in tool config paths expands to",
    )
    data_dir: Optional[Path] = Field(
        default=None,
        description="Where the custom catalog store lives (defaults to ~/.plugdeck)",
    )

    # Targets
    default_tool: str = Field(
        default="Claude",
        description="Tool used for MCP installs when a plugin names none",
    )
    skill_scope: str = Field(
        default="agents",
        description="Skill directory scope used for skill installs",
    )

    # External processes
    git_timeout: int = Field(default=60, description="Seconds allowed for a skill clone")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    model_config = {
        "env_prefix": ENV_PREFIX,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject config.yaml values as fallbacks below env vars and .env."""
        if not isinstance(data, dict):
            data = {}

        home_dir = Path(data["home_dir"]) if data.get("home_dir") else _resolve_home_dir()
        yaml_config = load_yaml_config(home_dir)

        for key, value in yaml_config.items():
            if key not in data or data[key] is None:
                env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
                if env_val is None:
                    data[key] = value

        return data

    @property
    def config_dir(self) -> Path:
        """Get the ~/.plugdeck directory path."""
        return self.home_dir / ".plugdeck"

    @property
    def store_dir(self) -> Path:
        """Directory holding the custom catalog store."""
        return self.data_dir or self.config_dir


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
