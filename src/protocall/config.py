"""Configuration management for protocall.

Settings come from ``PROTOCALL_*`` environment variables or a ``.env``
file in the working directory.  Command-line flags override them (see
:func:`protocall.cli.app.main`).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from protocall.core.walker import DEFAULT_ANCESTOR_DELIMITER, DEFAULT_PROMPT_FORMAT
from protocall.exceptions import ConfigurationError

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROTOCALL_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1", description="gRPC server host")
    port: int = Field(default=50051, ge=1, le=65535, description="gRPC server port")
    timeout: Optional[float] = Field(default=None, gt=0, description="Call deadline in seconds")

    # Service context
    package: Optional[str] = Field(default=None, description="Protobuf package of the service")
    service: Optional[str] = Field(default=None, description="Service name")

    # Prompting
    input_prompt_format: str = Field(
        default=DEFAULT_PROMPT_FORMAT,
        description="Field prompt template with {ancestor}, {name} and {type}",
    )
    ancestor_delimiter: str = Field(
        default=DEFAULT_ANCESTOR_DELIMITER,
        description="Separator between ancestor field names",
    )

    # Output
    preserve_field_names: bool = Field(
        default=False,
        description="Print proto field names instead of lowerCamelCase JSON names",
    )

    # Logging
    log_level: LogLevel = Field(default="WARNING", description="Log level")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


def get_settings(**overrides: object) -> Settings:
    """Build settings, applying non-``None`` *overrides* on top of the environment.

    Raises
    ------
    ConfigurationError
        If a value fails validation.
    """
    try:
        return Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigurationError(
            f"invalid configuration: {problems}",
            hint="Check PROTOCALL_* environment variables and command-line flags.",
        ) from exc
