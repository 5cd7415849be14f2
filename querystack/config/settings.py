"""
Stack settings.

Settings are read from an optional YAML file and, inside a Pulumi run,
from the Pulumi stack configuration. Nothing here changes the security
posture of the bucket or the fixed runtime of the query function.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from querystack.config.constants import (
    DATABASE_BUCKET_ENV,
    DEFAULT_TAGS,
    LOG_RETENTION_DAYS,
)

DEFAULT_SETTINGS_FILE = "querystack.yaml"


class SettingsError(ValueError):
    """Raised when a settings file cannot be read or validated."""
    pass


class StackSettings(BaseModel):
    """
    Settings for the query service stack.

    Example:
        settings = StackSettings(
            stack_name="QueryStack",
            environment="prod",
            database_key="databases/posts",
        )
    """

    stack_name: str = Field(default="QueryStack", description="Provisioning unit name")
    environment: str = Field(default="dev", description="Deployment environment tag")
    project_root: Path = Field(
        default=Path("."), description="Directory the artifact manifest path is relative to"
    )
    region: str = Field(default="us-east-1", description="AWS region")
    tags: dict[str, str] = Field(
        default_factory=dict, description="Extra tags for every resource"
    )
    database_key: str | None = Field(
        default=None, description="Key of the database file inside the bucket"
    )
    extra_environment: dict[str, str] = Field(
        default_factory=dict, description="Literal environment variables for the query function"
    )
    log_retention_days: int = Field(
        default=30, description="Retention of the query function's log group"
    )

    class Config:
        frozen = True

    @field_validator("stack_name")
    @classmethod
    def _stack_name_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("stack_name must not be empty")
        return value

    @field_validator("log_retention_days")
    @classmethod
    def _retention_allowed(cls, value: int) -> int:
        if value not in LOG_RETENTION_DAYS:
            raise ValueError(
                f"log_retention_days must be one of {', '.join(map(str, LOG_RETENTION_DAYS))}"
            )
        return value

    @field_validator("extra_environment")
    @classmethod
    def _bucket_env_reserved(cls, value: dict[str, str]) -> dict[str, str]:
        if DATABASE_BUCKET_ENV in value:
            raise ValueError(f"{DATABASE_BUCKET_ENV} is set by the stack and cannot be overridden")
        return value

    def resource_tags(self) -> dict[str, str]:
        """Tags applied to every resource of the stack."""
        return {
            **DEFAULT_TAGS,
            "Environment": self.environment,
            "Stack": self.stack_name,
            **self.tags,
        }


def load_settings(path: str | Path | None = None, **overrides: Any) -> StackSettings:
    """
    Load settings from a YAML file.

    A missing file yields the defaults. Keyword overrides take precedence
    over the file; None values are ignored.

    Args:
        path: YAML file to read (defaults to ./querystack.yaml)
        **overrides: Field values overriding the file

    Returns:
        Validated StackSettings

    Raises:
        SettingsError: If the file is not a mapping or fails validation
    """
    settings_path = Path(path) if path is not None else Path(DEFAULT_SETTINGS_FILE)
    data: dict[str, Any] = {}

    if settings_path.exists():
        with open(settings_path, "r") as f:
            loaded = yaml.safe_load(f)
        if loaded is not None and not isinstance(loaded, dict):
            raise SettingsError(f"{settings_path}: expected a mapping at the top level")
        data.update(loaded or {})
    elif path is not None:
        raise SettingsError(f"Settings file not found: {settings_path}")

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return StackSettings(**data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {settings_path}: {e}") from e
