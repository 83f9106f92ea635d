"""Service configuration utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceSettings(BaseModel):
    """Runtime configuration for the export services."""

    ENV_PREFIX: ClassVar[str] = "DIAGRAMFORGE_"
    ENV_FILE: ClassVar[str | None] = ".env"
    ENV_FILE_ENCODING: ClassVar[str] = "utf-8"

    model_config: ClassVar[ConfigDict] = cast(
        ConfigDict,
        {
            "extra": "ignore",
            "env_prefix": ENV_PREFIX,
        },
    )

    preferences_path: Path | None = Field(
        default=None,
        description="Optional YAML file supplying read-only export defaults.",
    )
    max_request_body_bytes: int = Field(
        default=8 * 1024 * 1024,
        ge=16 * 1024,
        description="Maximum allowed size in bytes for incoming request bodies.",
    )
    max_batch_formats: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Maximum number of formats accepted by a single batch export.",
    )
    export_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        le=3600.0,
        description="Upper bound in seconds for a single encoder run.",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level applied to the diagramforge loggers.",
    )

    @field_validator("preferences_path")
    @classmethod
    def _ensure_preferences_exist(cls, value: Path | None) -> Path | None:
        """Validate that a configured preferences file exists."""

        if value is not None and not value.is_file():
            raise ValueError(f"Preferences file does not exist: {value}")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @staticmethod
    def _parse_env_file(path: Path, encoding: str) -> dict[str, str]:
        """Parse an environment file supporting `export` and quoted values."""

        parsed: dict[str, str] = {}

        for raw_line in path.read_text(encoding=encoding).splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].strip()

            if "=" not in line:
                continue

            key, raw_value = line.split("=", 1)
            key = key.strip()
            value = raw_value.strip()

            if value and value[0] == value[-1] and value[0] in {'"', "'"}:
                value = value[1:-1]

            parsed[key] = value

        return parsed

    @classmethod
    def from_environment(cls) -> "ServiceSettings":
        """Load settings from environment variables or a `.env` file."""

        env_prefix = cls.ENV_PREFIX
        env_file_name = cls.ENV_FILE
        env_encoding = cls.ENV_FILE_ENCODING

        file_values: dict[str, str] = {}
        if env_file_name:
            env_file_path = Path(env_file_name)
            if not env_file_path.is_absolute():
                env_file_path = Path.cwd() / env_file_path
            if env_file_path.exists():
                file_values = cls._parse_env_file(env_file_path, env_encoding)

        overrides: dict[str, str] = {}
        for field_name in cls.model_fields:
            env_key = f"{env_prefix}{field_name.upper()}"
            if env_key in os.environ:
                overrides[field_name] = os.environ[env_key]
            elif env_key in file_values:
                overrides[field_name] = file_values[env_key]

        typed_overrides = cast(dict[str, Any], overrides)
        return cls(**typed_overrides)


__all__: list[str] = ["ServiceSettings"]
