"""Configuration management for Reviewbot.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Environment variables (REVIEWBOT_* prefix)
2. TOML configuration file or keyword arguments to ReviewBotConfig
3. Default values defined in this module

Example TOML configuration:
    [github]
    bot_login = "nuttxpr"

    [review]
    excluded_size_labels = ["Size: XS"]

Example environment variable override:
    REVIEWBOT_GITHUB__TOKEN="ghp_..."
    REVIEWBOT_GEMINI__API_KEY="..."
    REVIEWBOT_PACING__ITEM_DELAY_SECONDS=10
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from reviewbot.errors import ConfigurationError

DEFAULT_HEADER = (
    "[**\\[Experimental Bot, please feedback here\\]**]"
    "(https://github.com/search?q=repo%3Aapache%2Fnuttx+13494&type=pullrequests)"
)


class GitHubConfig(BaseSettings):
    """GitHub REST API configuration.

    Attributes:
        token: Personal access token used for every API call
        api_url: Base URL of the GitHub REST API
        bot_login: Login whose reactions count as attempt markers. Resolved
            from the token's account when unset.
        timeout_seconds: Per-request timeout in seconds
        primary_reaction: Reaction content used as the primary marker
        secondary_reaction: Reaction content used as the secondary marker
    """

    model_config = SettingsConfigDict(
        env_prefix="REVIEWBOT_GITHUB__",
        extra="forbid",
    )

    token: SecretStr | None = Field(default=None)
    api_url: str = Field(default="https://api.github.com")
    bot_login: str | None = Field(default=None)
    timeout_seconds: int = Field(default=30, ge=1, le=300)
    primary_reaction: str = Field(default="rocket")
    secondary_reaction: str = Field(default="eyes")

    @field_validator("primary_reaction", "secondary_reaction")
    @classmethod
    def validate_reaction(cls, v: str) -> str:
        """Validate the reaction is one GitHub accepts."""
        valid_reactions = {"+1", "-1", "laugh", "confused", "heart", "hooray", "rocket", "eyes"}
        if v not in valid_reactions:
            raise ValueError(f"Invalid reaction: {v}. Must be one of {valid_reactions}")
        return v


class GeminiConfig(BaseSettings):
    """Gemini text-generation service configuration.

    Attributes:
        api_key: Gemini API key
        url: Base URL of the Generative Language API
        model: Model name used for reviews
        timeout_seconds: Request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="REVIEWBOT_GEMINI__",
        extra="forbid",
    )

    api_key: SecretStr | None = Field(default=None)
    url: str = Field(default="https://generativelanguage.googleapis.com")
    model: str = Field(default="gemini-1.5-pro")
    timeout_seconds: int = Field(default=30, ge=1, le=600)


class ReviewConfig(BaseSettings):
    """Review selection and comment composition configuration.

    Attributes:
        page_size: Number of newest open pull requests fetched per cycle
        size_label_prefix: Prefix identifying size classification labels
        excluded_size_labels: Size labels that are never reviewed
        squash_advisory: Advise squashing when a pull request has several commits
        header: Text placed at the top of every published comment
        instructions_file: Optional file replacing the built-in review instructions
    """

    model_config = SettingsConfigDict(
        env_prefix="REVIEWBOT_REVIEW__",
        extra="forbid",
    )

    page_size: int = Field(default=20, ge=1, le=100)
    size_label_prefix: str = Field(default="Size: ")
    excluded_size_labels: list[str] = Field(default_factory=lambda: ["Size: XS"])
    squash_advisory: bool = Field(default=True)
    header: str = Field(default=DEFAULT_HEADER)
    instructions_file: Path | None = Field(default=None)


class PacingConfig(BaseSettings):
    """Fixed pacing between remote operations.

    Attributes:
        item_delay_seconds: Delay after each processed pull request
        cycle_delay_seconds: Delay after each full poll cycle
    """

    model_config = SettingsConfigDict(
        env_prefix="REVIEWBOT_PACING__",
        extra="forbid",
    )

    item_delay_seconds: float = Field(default=5.0, ge=0.0, le=3600.0)
    cycle_delay_seconds: float = Field(default=60.0, ge=0.0, le=86400.0)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stdout only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="REVIEWBOT_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=50, ge=1, le=1000)
    retention_count: int = Field(default=10, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class ReviewBotConfig(BaseSettings):
    """Root configuration for Reviewbot.

    Environment variable format for nested config:
        REVIEWBOT_<SECTION>__<KEY>=value

    Example:
        REVIEWBOT_GITHUB__TOKEN="ghp_..."
        REVIEWBOT_REVIEW__PAGE_SIZE=10
    """

    model_config = SettingsConfigDict(
        env_prefix="REVIEWBOT_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over TOML values passed as keyword arguments
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_config(config_path: Path | None = None) -> ReviewBotConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./reviewbot.toml (current directory)
    3. ~/.config/reviewbot/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        ReviewBotConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path = config_path
    else:
        search_paths = [
            Path.cwd() / "reviewbot.toml",
            Path.home() / ".config" / "reviewbot" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    # Pydantic overlays environment variables on top of the TOML data
    try:
        return ReviewBotConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(
                f"Invalid configuration in {selected_path}: {e}"
            ) from e
        else:
            raise ValueError(f"Invalid configuration: {e}") from e


def require_credentials(config: ReviewBotConfig, generation: bool = True) -> None:
    """Ensure the credentials needed for a run are present.

    Args:
        config: Loaded configuration.
        generation: Also require the Gemini API key.

    Raises:
        ConfigurationError: If the GitHub token or the Gemini API key is missing.
    """
    missing = []
    if config.github.token is None or not config.github.token.get_secret_value():
        missing.append("REVIEWBOT_GITHUB__TOKEN")
    if generation and (
        config.gemini.api_key is None or not config.gemini.api_key.get_secret_value()
    ):
        missing.append("REVIEWBOT_GEMINI__API_KEY")
    if missing:
        raise ConfigurationError(f"Missing required credentials: {', '.join(missing)}")
