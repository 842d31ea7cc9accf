"""
Service configuration.

Built once at startup and passed to every component; never mutated.

Precedence (lowest first): defaults -> YAML file (DELIVERY_CONFIG) -> environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from src.core.errors import ConfigError

PLACEHOLDER_SECRETS = frozenset({"changeme", "change-me", "secret", "dev-secret"})

# Environment variable -> config field
ENV_FIELDS: dict[str, str] = {
    "STORAGE_ROOT": "storage_root",
    "IMAGE_CACHE_PATH": "cache_root",
    "SIGNING_SECRET": "signing_secret",
    "SIGNED_URL_TTL": "default_token_ttl_seconds",
    "DELIVERY_ENV": "environment",
    "LOG_LEVEL": "log_level",
}

CONFIG_PATH_ENV = "DELIVERY_CONFIG"


class DeliveryConfig(BaseModel):
    """Immutable runtime configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    storage_root: Path = Path("./storage")
    cache_root: Path | None = None
    signing_secret: str = Field(min_length=16)
    default_token_ttl_seconds: int = Field(default=300, gt=0)
    max_token_ttl_seconds: int = Field(default=7 * 24 * 3600, gt=0)
    private_prefix: str = "private"
    public_prefix: str = "public"
    max_transform_dimension: int = Field(default=4096, gt=0)
    stream_chunk_size: int = Field(default=64 * 1024, gt=0)
    environment: Literal["development", "test", "production"] = "development"
    log_level: str = "INFO"

    @field_validator("private_prefix", "public_prefix")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        value = value.strip("/")
        if not value or "/" in value or value in (".", ".."):
            raise ValueError("bucket prefix must be a single path segment")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check_consistency(self) -> DeliveryConfig:
        if self.default_token_ttl_seconds > self.max_token_ttl_seconds:
            raise ValueError("default_token_ttl_seconds exceeds max_token_ttl_seconds")
        if (
            self.environment == "production"
            and self.signing_secret.lower() in PLACEHOLDER_SECRETS
        ):
            raise ValueError("signing_secret must be set to a real secret in production")
        return self

    @property
    def resolved_cache_root(self) -> Path:
        return self.cache_root if self.cache_root is not None else self.storage_root / "cache"


def _strip_yaml_fence(content: str) -> str:
    """Accept either bare YAML or YAML wrapped in a ```yaml fence."""
    yaml_lines: list[str] = []
    in_block = False
    found_block = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and stripped.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)
    return "\n".join(yaml_lines) if found_block else content


def load_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found at: {path}")

    try:
        data = yaml.safe_load(_strip_yaml_fence(path.read_text()))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in config file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def load_config(
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
) -> DeliveryConfig:
    """
    Build the configuration from file and environment.

    Raises ConfigError if a value is missing or invalid.
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    config_path = path or (Path(env[CONFIG_PATH_ENV]) if env.get(CONFIG_PATH_ENV) else None)
    if config_path is not None:
        values.update(load_config_file(config_path))

    for env_var, field_name in ENV_FIELDS.items():
        if env.get(env_var):
            values[field_name] = env[env_var]

    try:
        return DeliveryConfig.model_validate(values)
    except PydanticValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e


def prepare_storage(config: DeliveryConfig) -> None:
    """Create the bucket directories if they do not exist yet."""
    for bucket in (config.public_prefix, config.private_prefix):
        (config.storage_root / bucket).mkdir(parents=True, exist_ok=True)
    config.resolved_cache_root.mkdir(parents=True, exist_ok=True)
