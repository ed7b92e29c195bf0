"""Configuration manager for persistent settings stored as JSON."""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.core.validation import EmailValidator

from .errors import (
    ConfigFileError,
    ConfigurationError,
    FileSystemError,
    GlanceError,
    MissingConfigError,
)
from .logging import get_logger
from .paths import CONFIG_PATH

logger = get_logger(__name__)


class MailConfig(BaseModel):
    """Pydantic model for the daily report mail settings."""

    sender_email: str = ""
    sender_name: str = ""
    recipient_emails: list[str] = Field(default_factory=list)
    smtp_host: str = "smtp.exmail.qq.com"
    smtp_port: int = Field(default=465, ge=1, le=65535)
    use_tls: bool = True
    is_enabled: bool = False
    connect_timeout: float = Field(default=30.0, gt=0)
    command_timeout: Optional[float] = Field(default=60.0, gt=0)

    @field_validator("sender_email")
    @classmethod
    def _check_sender(cls, value: str) -> str:
        value = value.strip()
        if value and not EmailValidator.is_valid_email(value):
            raise ValueError(f"Invalid sender email address: {value}")
        return value

    @field_validator("recipient_emails")
    @classmethod
    def _check_recipients(cls, value: list[str]) -> list[str]:
        recipients = [address.strip() for address in value if address.strip()]
        for address in recipients:
            if not EmailValidator.is_valid_email(address):
                raise ValueError(f"Invalid recipient email address: {address}")
        return recipients


class LoggingConfig(BaseModel):
    """Pydantic model for logging settings."""

    log_level: str = "INFO"
    smtp_transcript: bool = False

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {value}")
        return level


class AppConfig(BaseModel):
    """Pydantic model for overall application configuration."""

    version: str = "0.1.0"
    mail: MailConfig = Field(default_factory=MailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ConfigManager:
    """Manages persistent application configuration."""

    _instance = None
    _initialized = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None):
        if not ConfigManager._initialized:
            self.path = config_path or CONFIG_PATH
            self.config = self._load_or_create_config()
            logger.info(f"Configuration loaded from {self.path}")
            ConfigManager._initialized = True

    def _load_or_create_config(self) -> AppConfig:
        """Load configuration from file or create default if not present."""

        if not self.path.exists():
            logger.info("No config file found, creating default configuration.")
            config = AppConfig()
            self._save_config(config)
            return config

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = AppConfig(**data)
            logger.debug("Configuration successfully loaded and validated.")
            return config

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise ConfigFileError(f"Configuration file is not valid JSON: {str(e)}") from e
        except ValidationError as e:
            logger.error(f"Failed to validate config file: {e}")
            raise ConfigFileError(
                f"Configuration data does not match expected schema: {str(e)}"
            ) from e
        except OSError as e:
            raise FileSystemError(f"Failed to read configuration file: {self.path}") from e

    def _save_config(self, config: Optional[AppConfig] = None):
        """Save the current configuration to file."""

        config = config or self.config

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)
            logger.debug("Configuration successfully saved.")
        except OSError as e:
            raise FileSystemError(f"Failed to write configuration file: {str(e)}") from e

    def get_mail_config(self) -> MailConfig:
        """Return a copy of the mail settings."""
        return self.config.mail.model_copy(deep=True)

    def get_logging_config(self) -> LoggingConfig:
        """Return a copy of the logging settings."""
        return self.config.logging.model_copy()

    def set_config(self, key_path: str, value: Any, persist: bool = True):
        """Set a configuration value using dot-separated key path."""

        keys = key_path.split(".")
        obj = self.config

        for key in keys[:-1]:
            if not hasattr(obj, key):
                raise MissingConfigError(
                    f"Configuration path '{key_path}' is invalid: '{key}' not found"
                )
            obj = getattr(obj, key)

        if not hasattr(obj, keys[-1]):
            raise MissingConfigError(
                f"Configuration key '{keys[-1]}' does not exist in path '{key_path}'"
            )

        try:
            # Re-validate through the model so bad values never reach disk
            updated = obj.model_validate({**obj.model_dump(), keys[-1]: value})
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid value for configuration key '{key_path}': {str(e)}"
            ) from e

        setattr(obj, keys[-1], getattr(updated, keys[-1]))

        if persist:
            self._save_config()

        logger.info(f"Config key '{key_path}' updated and saved.")

    def reset_to_defaults(self):
        """Reset configuration to default values."""

        try:
            logger.warning("Resetting configuration to default values.")
            self.config = AppConfig()
            self._save_config()
            logger.info("Configuration reset to default values.")
        except GlanceError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to reset configuration to defaults: {str(e)}"
            ) from e
