#!/usr/bin/env python3
"""
Bot Configuration

Loads settings from a .env file and the process environment.
"""

import os
import logging
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from chatlog.line_matcher import DEFAULT_TRIGGER
from clients.completion_client import DEFAULT_MODEL, GEMINI_OPENAI_BASE_URL
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_AUTO_MESSAGE_INTERVAL_MS = 7200000

REQUIRED_VARS = (
    "GEMINI_API_KEY",
    "MINECRAFT_DIR",
    "RCON_HOST",
    "RCON_PORT",
    "RCON_PASSWORD",
)

AUTO_MESSAGE_TEMPLATE = (
    "§6🌟 Support Our Server! 🚀 §bHelp us keep the fun going by donating at §l{link}§b. "
    "Your support means a lot! Thank you for being part of our community! 🙏"
)

class BotConfig(BaseModel):
    """Validated bot settings."""
    gemini_api_key: str = Field(min_length=1)
    minecraft_dir: Path
    rcon_host: str = Field(min_length=1)
    rcon_port: int = Field(ge=1, le=65535)
    rcon_password: str = Field(min_length=1)
    rcon_timeout: float = Field(default=5.0, gt=0)
    auto_message_interval_ms: int = Field(default=DEFAULT_AUTO_MESSAGE_INTERVAL_MS, ge=0)
    donation_link: Optional[str] = None
    auto_message: Optional[str] = None
    trigger_keyword: str = Field(default=DEFAULT_TRIGGER, pattern=r"^\S+$")
    completion_model: str = DEFAULT_MODEL
    completion_base_url: str = GEMINI_OPENAI_BASE_URL
    completion_timeout: float = Field(default=30.0, gt=0)
    bot_logs_dir: Path = Path("logs")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> "BotConfig":
        """
        Build the configuration from the environment.

        Args:
            env_file: Optional .env file loaded before reading variables

        Raises:
            ConfigError: if a required variable is missing or a value is invalid
        """
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)

        for name in REQUIRED_VARS:
            if not os.getenv(name):
                raise ConfigError(f"Missing required environment variable: {name}")

        values = {
            "gemini_api_key": os.getenv("GEMINI_API_KEY"),
            "minecraft_dir": os.getenv("MINECRAFT_DIR"),
            "rcon_host": os.getenv("RCON_HOST"),
            "rcon_port": os.getenv("RCON_PORT"),
            "rcon_password": os.getenv("RCON_PASSWORD"),
            "donation_link": os.getenv("DONATION_LINK") or None,
            "auto_message": os.getenv("AUTO_MESSAGE") or None,
        }
        optional = {
            "auto_message_interval_ms": "AUTO_MESSAGE_INTERVAL",
            "trigger_keyword": "TRIGGER_KEYWORD",
            "completion_model": "COMPLETION_MODEL",
            "completion_base_url": "COMPLETION_BASE_URL",
            "rcon_timeout": "RCON_TIMEOUT",
            "completion_timeout": "COMPLETION_TIMEOUT",
            "bot_logs_dir": "BOT_LOGS_DIR",
            "log_level": "LOG_LEVEL",
        }
        for field_name, var in optional.items():
            value = os.getenv(var)
            if value:
                values[field_name] = value

        try:
            config = cls(**values)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {errors}") from e

        if not config.minecraft_dir.is_dir():
            raise ConfigError(f"Minecraft directory not found: {config.minecraft_dir}")

        return config

    @property
    def auto_message_interval(self) -> float:
        """Broadcast interval in seconds."""
        return self.auto_message_interval_ms / 1000

    def broadcast_message(self) -> Optional[str]:
        """Text of the periodic broadcast, or None when nothing is configured."""
        if self.auto_message:
            return self.auto_message
        if self.donation_link:
            return AUTO_MESSAGE_TEMPLATE.format(link=self.donation_link)
        return None

    def summary(self) -> dict:
        """Settings safe to log."""
        return {
            "minecraft_dir": str(self.minecraft_dir),
            "rcon": f"{self.rcon_host}:{self.rcon_port}",
            "trigger": self.trigger_keyword,
            "model": self.completion_model,
            "auto_message_minutes": self.auto_message_interval_ms / 1000 / 60,
        }
