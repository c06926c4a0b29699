"""Runtime settings, read from the environment and an optional .env file."""

from __future__ import annotations

import logging
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import Field, PositiveFloat, PositiveInt, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_GITLAB_URL = "https://gitlab.com"
DEFAULT_TIMEOUT = 30.0  # seconds per HTTP request
DEFAULT_MAX_FILE_BYTES = 500_000  # larger manifests are truncated before parsing
DEFAULT_PORT = 8420


class Settings(BaseSettings):
    """Tokens, endpoints and limits for the repository client.

    Read from GITHUB_TOKEN, GITLAB_TOKEN, GITLAB_URL, REPODEPS_TIMEOUT and
    REPODEPS_MAX_FILE_BYTES. Invalid numbers fall back to the defaults.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        populate_by_name=True,
        env_ignore_empty=True,
        extra="ignore",
    )

    github_token: str | None = Field(default=None, validation_alias="GITHUB_TOKEN")
    gitlab_token: str | None = Field(default=None, validation_alias="GITLAB_TOKEN")
    gitlab_url: str = Field(default=DEFAULT_GITLAB_URL, validation_alias="GITLAB_URL")
    timeout: PositiveFloat = Field(default=DEFAULT_TIMEOUT, validation_alias="REPODEPS_TIMEOUT")
    max_file_bytes: PositiveInt = Field(default=DEFAULT_MAX_FILE_BYTES, validation_alias="REPODEPS_MAX_FILE_BYTES")

    @field_validator("gitlab_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or DEFAULT_GITLAB_URL

    @field_validator("timeout", "max_file_bytes", mode="wrap")
    @classmethod
    def fall_back_to_default(cls, value: Any, handler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].default
            logger.warning("Ignoring invalid %s=%r, using %s", info.field_name, value, default)
            return default

    @classmethod
    def from_env(cls) -> Settings:
        """Load .env from the working directory if present, then read the environment."""
        load_dotenv(find_dotenv(usecwd=True))
        return cls()
