"""
Configuration module for Radio CMS.

Provides centralized configuration for the content store, trash retention,
the admin API and the audit trail.
"""

import os
from enum import Enum
from typing import Any, Dict, Optional, Union, get_args, get_origin

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class LogLevel(str, Enum):
    """Log levels accepted by the CLI and API logging setup."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class CMSConfig(BaseModel):
    """Central configuration for the Radio CMS back office.

    Configuration can be set programmatically or loaded from environment
    variables using the ``RADIO_CMS_`` prefix.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (RADIO_CMS_ prefix)
        3. Default values (lowest priority)

    Example:
        >>> config = CMSConfig(
        ...     database_url="postgresql://cms@localhost/radio",
        ...     retention_days=30,
        ...     protected_retention_days=60,
        ... )

        Loading from environment:

        >>> import os
        >>> os.environ['RADIO_CMS_PURGE_BATCH_SIZE'] = '50'
        >>> config = CMSConfig.from_env()

    Environment Variables:
        - RADIO_CMS_DATABASE_URL
        - RADIO_CMS_RETENTION_DAYS
        - RADIO_CMS_PROTECTED_RETENTION_DAYS
        - RADIO_CMS_JWT_SECRET
    """

    # General settings
    application_name: str = Field(
        "Radio CMS", description="Name of the application for audit trails"
    )
    environment: str = Field(
        "production", description="Environment (development, staging, production)"
    )

    # Store
    database_url: str = Field(
        "sqlite:///./radio_cms.db", description="SQLAlchemy database URL"
    )
    database_echo: bool = Field(False, description="Echo SQL statements")

    # Trash retention
    retention_days: int = Field(
        30, description="Days a deleted item stays restorable", gt=0
    )
    protected_retention_days: int = Field(
        60, description="Days a deleted protected item stays restorable", gt=0
    )
    purge_batch_size: int = Field(
        100, description="Rows removed per purge transaction", gt=0, le=10000
    )
    trash_listing_limit: Optional[int] = Field(
        None, description="Maximum trash items listed per content type", gt=0
    )

    # Admin API
    jwt_secret: str = Field(
        "change-me", description="Secret used to verify admin session tokens"
    )
    jwt_algorithm: str = Field("HS256", description="Session token algorithm")
    session_max_age_hours: int = Field(
        24, description="Maximum age of an admin session token", gt=0
    )

    # Audit and logging
    audit_enabled: bool = Field(True, description="Record lifecycle transitions")
    log_level: LogLevel = Field(LogLevel.INFO, description="Root log level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Environment must be one of: {', '.join(sorted(valid_environments))}"
            )
        return v.lower()

    @field_validator("protected_retention_days")
    @classmethod
    def validate_protected_retention(cls, v: int, info: ValidationInfo) -> int:
        """Protected content is never kept for less time than regular content."""
        regular = info.data.get("retention_days")
        if regular is not None and v < regular:
            raise ValueError(
                "protected_retention_days must be greater than or equal to "
                "retention_days"
            )
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_env(cls, prefix: str = "RADIO_CMS_") -> "CMSConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation

            # Optional[T] -> T
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            try:
                if field_type == bool:
                    config_dict[field_name] = value.lower() in (
                        "true",
                        "1",
                        "yes",
                        "on",
                    )
                elif field_type == int:
                    config_dict[field_name] = int(value)
                elif isinstance(field_type, type) and issubclass(field_type, Enum):
                    config_dict[field_name] = field_type(value.upper())
                else:
                    config_dict[field_name] = value
            except (ValueError, TypeError):
                # Leave the raw value for pydantic to report
                config_dict[field_name] = value

        return cls.model_validate(config_dict)


# Global configuration instance
_config: Optional[CMSConfig] = None


def get_config() -> CMSConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = CMSConfig.from_env()

    return _config


def set_config(config: Optional[CMSConfig]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set, or None to reload from the environment
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> CMSConfig:
    """
    Configure Radio CMS with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = CMSConfig(**kwargs)
    else:
        config_dict = _config.model_dump()
        config_dict.update(kwargs)
        _config = CMSConfig(**config_dict)

    return _config
