"""Configuration system for storage-freer.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages. Every field has a default, so a
missing configuration file simply yields the default configuration.
"""

import os
import re
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from storage_freer.core.data.filesystem.size_calculator import SizeMode

# Regular expression pattern for environment variable references
# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

MAX_WORKERS_LIMIT: Final[int] = 256


def default_max_workers() -> int:
    """Worker count used when none is configured (matches ThreadPoolExecutor)."""
    return min(32, (os.cpu_count() or 1) + 4)


def default_full_access_probe() -> Path:
    """Directory whose readability indicates broad filesystem access."""
    if sys.platform == "darwin":
        return Path("/Library/Application Support")
    return Path("/root")


class ScanConfig(BaseModel):
    """Configuration for directory scanning and size aggregation.

    Defines worker pool bounds, which entries are visible to both the listing
    and the recursive measurement phase, and how sizes are computed.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    max_workers: Annotated[
        int,
        Field(
            ge=1,
            le=MAX_WORKERS_LIMIT,
            description="Maximum number of concurrent measurement workers",
        ),
    ] = Field(default_factory=default_max_workers)
    include_hidden: Annotated[
        bool,
        Field(
            description="List and measure dot-prefixed entries",
        ),
    ] = True
    exclude_patterns: Annotated[
        Sequence[str],
        Field(
            description="Glob patterns for entry names to skip when listing and measuring",
        ),
    ] = ()
    size_mode: Annotated[
        SizeMode,
        Field(
            description="Apparent file size or allocated disk usage",
        ),
    ] = SizeMode.APPARENT
    follow_symlinks: Annotated[
        bool,
        Field(
            description="Follow symbolic links while measuring (with loop detection)",
        ),
    ] = False
    expand_directories_only: Annotated[
        bool,
        Field(
            description="Attach only subdirectories when expanding a directory",
        ),
    ] = False
    full_access_probe: Annotated[
        Path,
        Field(
            description="Directory listed to decide whether to prompt for broader access",
        ),
    ] = Field(default_factory=default_full_access_probe)

    @field_validator("exclude_patterns", mode="after")
    @classmethod
    def validate_exclude_patterns(cls, v: Sequence[str]) -> Sequence[str]:
        """Strip patterns and drop blank ones.

        Args:
            v: Sequence of glob patterns

        Returns:
            Cleaned patterns
        """
        return tuple(pattern.strip() for pattern in v if pattern.strip())


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings.

    Defines logging behavior for the command-line consumer.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "WARNING"
    log_file: Annotated[
        Path | None,
        Field(
            description="Optional rotating log file",
        ),
    ] = None
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level configuration container aggregating all configuration sections:
    - scan: Scanning and aggregation settings
    - application: Application-level settings
    """

    model_config = ConfigDict(extra="forbid")

    scan: Annotated[
        ScanConfig,
        Field(
            description="Scanning configuration",
        ),
    ] = Field(default_factory=ScanConfig)
    application: Annotated[
        ApplicationConfig,
        Field(
            description="Application-level configuration",
        ),
    ] = Field(default_factory=ApplicationConfig)


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails."""


class ConfigurationError(Exception):
    """Exception raised when configuration loading or validation fails."""


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Parses ${VARIABLE_NAME} syntax and replaces with environment variable values.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing

    Examples:
        >>> os.environ["SCAN_ROOT"] = "/data"
        >>> resolve_env_var("${SCAN_ROOT}/probe")
        '/data/probe'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in a dictionary.

    Traverses nested dictionaries and lists, resolving environment variable
    references in string values. Non-string values are preserved as-is.

    Args:
        data: Dictionary potentially containing environment variable references

    Returns:
        New dictionary with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing
    """
    return {key: _resolve_value(value) for key, value in data.items()}


def _resolve_value(value: object) -> object:
    if isinstance(value, str):
        return resolve_env_var(value)
    if isinstance(value, dict):
        # YAML data is untyped at load time; validated by Pydantic after resolution
        return resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]  # pyright: ignore[reportUnknownVariableType]  # YAML list items
    return value


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate application configuration from a YAML file.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
        EnvironmentVariableError: If a referenced environment variable is missing
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Create the file or omit --config to use the defaults."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = f"Failed to parse YAML configuration file: {config_path}\nYAML parsing error: {e}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\n{e}"
        raise ConfigurationError(msg) from e

    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        msg = (
            f"Configuration file must contain a YAML mapping at the top level: {config_path}\n"
            f"Found: {type(raw_data).__name__}"
        )
        raise ConfigurationError(msg)

    resolved = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary

    try:
        return MainConfig.model_validate(resolved)
    except ValidationError as e:
        details = "\n".join(
            f"  - {'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        msg = f"Invalid configuration in {config_path}:\n{details}"
        raise ConfigurationError(msg) from e


def load_config_or_default(config_path: Path | None) -> MainConfig:
    """Load ``config_path`` when given, otherwise return the defaults."""
    if config_path is None:
        return MainConfig()
    return load_main_config(config_path)
