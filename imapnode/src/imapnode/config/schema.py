"""Pydantic models describing the imapnode runtime configuration."""
from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ValidationError(ValueError):
    """Raised when configuration data does not satisfy the schema."""


class LoggingSettings(BaseModel):
    """Log output controls."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["debug", "info", "warn", "error"] = "info"
    component: str = "imapnode"

    @field_validator("level", mode="before")
    @classmethod
    def _lowercase_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.lower()
            return "warn" if lowered == "warning" else lowered
        return value

    @property
    def debug_enabled(self) -> bool:
        return self.level == "debug"


class ImapSettings(BaseModel):
    """Connection defaults applied to every IMAP session."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=30.0, gt=0)
    default_port: int = Field(default=993, gt=0, lt=65536)


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    imap: ImapSettings = Field(default_factory=ImapSettings)
    # Host credential store: credential type name -> decrypted credential data.
    credentials: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: int) -> int:
        if value != 1:
            raise ValidationError("config.yaml version must be 1")
        return value
