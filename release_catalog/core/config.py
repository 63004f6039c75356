"""
Process configuration.

Settings are read from a YAML file. The file location comes from, in order:

1. the ``path`` argument of ``load_settings``
2. the ``RELEASE_CATALOG_CONFIG`` environment variable
3. ``catalog.yaml`` in the current working directory

A missing file means "use the defaults". A file that cannot be parsed is
reported and the defaults are used instead.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "RELEASE_CATALOG_CONFIG"
DEFAULT_CONFIG_FILE = Path("catalog.yaml")

_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


class Settings(BaseModel):
    """Runtime settings for the catalog service."""

    bind_host: str = Field(
        default="0.0.0.0",
        description="Address the HTTP server listens on.",
    )
    bind_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on.",
    )
    db_path: Path = Field(
        default=Path("./releases.db3"),
        description="Location of the SQLite catalog database. '~' and $VARS are expanded.",
    )
    files_dir: Path = Field(
        default=Path("./files"),
        description="Directory that artifact storage paths are resolved against.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Name of the root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    )
    pool_size: int = Field(
        default=4,
        ge=1,
        description="Maximum number of open database connections.",
    )
    pool_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long a request waits for a free connection before failing.",
    )
    seed_default_repositories: bool = Field(
        default=True,
        description="Create the built-in repositories and channels on startup if missing.",
    )

    @field_validator("db_path", "files_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Union[str, Path]) -> Path:
        return Path(os.path.expandvars(os.path.expanduser(str(value))))

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        name = str(value).strip().upper()
        name = _LEVEL_ALIASES.get(name, name)
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level {value!r}")
        return name

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def config_path(path: Optional[Union[str, Path]] = None) -> Path:
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from the config file, falling back to defaults."""
    path = config_path(path)
    if not path.exists():
        logger.info(f"No config file at {path}, using defaults")
        return Settings()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError("top level of the config file must be a mapping")
        return Settings(**raw)
    except (OSError, yaml.YAMLError, ValueError, ValidationError) as e:
        logger.warning(f"Invalid config file {path}, using defaults: {e}")
        return Settings()
