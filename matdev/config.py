"""
Configuration management

Type-safe configuration using Pydantic
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values, set_key
from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DelayMode(str, Enum):
    """Reaction delay mode"""
    IMMEDIATE = "immediate"
    RANDOMIZED = "randomized"

    @classmethod
    def parse(cls, value: Any) -> "DelayMode":
        """Accept enum values and the legacy ``nodelay`` / ``delay`` spellings"""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        legacy = {"nodelay": cls.IMMEDIATE, "delay": cls.RANDOMIZED}
        if text in legacy:
            return legacy[text]
        return cls(text)


class LoggingConfig(BaseModel):
    """Log sink configuration"""
    level: str = "INFO"
    to_file: bool = False
    file_path: str = "./logs/matdev.log"
    rotation: str = "10 MB"


class ReactionsConfig(BaseModel):
    """Auto-react configuration (shared with the dispatcher, mutated by admin commands)"""
    message_enabled: bool = False
    status_enabled: bool = False
    message_delay_mode: DelayMode = DelayMode.IMMEDIATE
    status_delay_mode: DelayMode = DelayMode.IMMEDIATE

    # 非空时状态回应从这里随机选
    status_emojis: str = ""
    ledger_sweep_hours: float = 6.0

    @field_validator("message_delay_mode", "status_delay_mode", mode="before")
    @classmethod
    def _parse_delay_mode(cls, value):
        try:
            return DelayMode.parse(value)
        except ValueError:
            # let pydantic report the original value
            return value

    @field_validator("ledger_sweep_hours")
    @classmethod
    def _positive_sweep(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("ledger_sweep_hours must be positive")
        return value


# Legacy MATDEV environment keys -> ReactionsConfig fields
LEGACY_ENV_KEYS: Dict[str, str] = {
    "AUTO_REACT": "message_enabled",
    "STATUS_AUTO_REACT": "status_enabled",
    "REACT_DELAY": "message_delay_mode",
    "STATUS_REACT_DELAY": "status_delay_mode",
    "STATUS_AUTO_REACT_EMOJIS": "status_emojis",
}


def _parse_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Config(BaseSettings):
    """MATDEV main configuration"""

    model_config = SettingsConfigDict(
        env_prefix="MATDEV_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    # Basic info
    name: str = "MATDEV"
    version: str = "2.0.0"
    debug: bool = False
    prefix: str = "."
    owner_number: Optional[str] = None

    # Sub-configs
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    reactions: ReactionsConfig = Field(default_factory=ReactionsConfig)

    @classmethod
    def load(cls, config_path: Optional[str] = None, env_file: Optional[str] = ".env") -> "Config":
        """Load configuration from file

        Args:
            config_path: Path to config file, defaults to config/config.yaml
            env_file: dotenv file consulted for legacy keys

        Returns:
            Config instance
        """
        if config_path is None:
            # Default paths
            paths = [
                Path("config/config.yaml"),
                Path("config.yaml"),
                Path.home() / ".matdev/config.yaml",
            ]
            for path in paths:
                if path.exists():
                    config_path = str(path)
                    break

        config = None
        if config_path and Path(config_path).exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                config = cls(**data)
            except Exception as e:
                logger.error(f"Failed to load config from {config_path}: {e}")
                logger.info("Using default configuration")
        else:
            logger.info("No config file found, using default configuration")

        if config is None:
            config = cls()

        config.apply_legacy_env(env_file)
        return config

    def apply_legacy_env(self, env_file: Optional[str] = ".env") -> Dict[str, Any]:
        """Override reaction settings from legacy MATDEV keys

        Process environment wins over the dotenv file.

        Returns:
            Applied overrides {field: value}
        """
        values: Dict[str, Optional[str]] = {}
        if env_file and Path(env_file).exists():
            values.update(dotenv_values(env_file))
        values.update({k: v for k, v in os.environ.items() if k in LEGACY_ENV_KEYS})

        applied = {}
        for env_key, field in LEGACY_ENV_KEYS.items():
            raw = values.get(env_key)
            if raw is None or raw == "":
                continue
            try:
                if field.endswith("_enabled"):
                    value = _parse_bool(raw)
                elif field.endswith("_delay_mode"):
                    value = DelayMode.parse(raw)
                else:
                    value = raw.strip()
            except ValueError:
                logger.warning(f"Ignoring invalid {env_key}={raw!r}")
                continue
            setattr(self.reactions, field, value)
            applied[field] = value

        if applied:
            logger.debug(f"Legacy env overrides applied: {applied}")
        return applied

    def save(self, config_path: str = "config/config.yaml"):
        """Save configuration to file"""
        Path(config_path).parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, allow_unicode=True, sort_keys=False)


def legacy_env_values(reactions: ReactionsConfig) -> Dict[str, str]:
    """Reaction toggles in the legacy .env spelling"""
    def mode(value: DelayMode) -> str:
        return "delay" if value is DelayMode.RANDOMIZED else "nodelay"

    return {
        "AUTO_REACT": "true" if reactions.message_enabled else "false",
        "STATUS_AUTO_REACT": "true" if reactions.status_enabled else "false",
        "REACT_DELAY": mode(reactions.message_delay_mode),
        "STATUS_REACT_DELAY": mode(reactions.status_delay_mode),
    }


class ConfigStore:
    """Binds a Config to the files it is persisted in"""

    def __init__(self, config: Config, path: str = "config/config.yaml", env_file: Optional[str] = ".env"):
        self.config = config
        self.path = path
        self.env_file = env_file

    @property
    def reactions(self) -> ReactionsConfig:
        return self.config.reactions

    def save(self) -> bool:
        """Persist the current configuration

        The YAML file is always written. Legacy keys are mirrored into an
        existing .env file and the process environment, since both override
        the YAML on the next load.

        Returns:
            Whether every write succeeded
        """
        try:
            self.config.save(self.path)
        except Exception as e:
            logger.error(f"Failed to save config to {self.path}: {e}")
            return False

        values = legacy_env_values(self.reactions)
        for key in values:
            if key in os.environ:
                os.environ[key] = values[key]

        if not self.env_file or not Path(self.env_file).exists():
            return True

        try:
            for key, value in values.items():
                set_key(self.env_file, key, value, quote_mode="never")
            return True
        except Exception as e:
            logger.error(f"Failed to update {self.env_file}: {e}")
            return False
