"""Command-line interface for storage-freer."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from storage_freer.core.config import MAX_WORKERS_LIMIT, ConfigurationError, EnvironmentVariableError
from storage_freer.core.data.filesystem import SizeMode
from storage_freer.utils.formatting import format_bytes

try:
    __version__ = version("storage-freer")
except PackageNotFoundError:
    __version__ = "unknown"


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path | None,
) -> Path | None:
    """Validate configuration file path.

    Args:
        ctx: Click context (required by Click callback signature)
        param: Click parameter (required by Click callback signature)
        value: Path value to validate

    Returns:
        Validated Path object

    Raises:
        click.BadParameter: If validation fails
    """
    if value is None:
        return value

    if value.exists() and value.is_dir():
        raise click.BadParameter("Configuration path must be a file, not a directory")

    valid_extensions = {".yaml", ".yml"}
    if value.suffix.lower() not in valid_extensions:
        extensions_str = ", ".join(sorted(valid_extensions))
        raise click.BadParameter(f"Invalid configuration file extension. Supported extensions: {extensions_str}")

    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Raises:
        click.BadParameter: If validation fails
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()

    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if normalized_value not in valid_levels:
        raise click.BadParameter(f'Invalid log level "{value}". Valid options: {", ".join(sorted(valid_levels))}')

    return normalized_value


@click.group()
@click.version_option(version=__version__, prog_name="storage-freer")
def cli() -> None:
    """storage-freer - find out what is using your disk space.

    Measures every entry of a directory in parallel, largest first, and
    keeps going past unreadable subtrees.

    Examples:

        # Scan the current directory
        storage-freer scan .

        # Scan /var and drill into /var/log
        storage-freer scan /var --expand /var/log

        # Machine-readable output
        storage-freer scan ~/Downloads --json
    """


@cli.command()
@click.argument("path", required=False, type=click.Path(path_type=Path, file_okay=False))
@click.option(
    "--expand",
    "-e",
    "expand_paths",
    multiple=True,
    type=click.Path(path_type=Path),
    help="Directory to expand in the report (repeatable)",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default=None,
    callback=validate_config_path,
    help="Configuration file path (.yaml, .yml)",
)
@click.option(
    "--log-level",
    "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Logging verbosity level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(1, MAX_WORKERS_LIMIT),
    default=None,
    help="Number of concurrent measurement workers",
)
@click.option("--hidden/--no-hidden", default=None, help="Include dot-prefixed entries")
@click.option("--exclude", "-x", "exclude_patterns", multiple=True, help="Glob pattern of names to skip (repeatable)")
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in SizeMode]),
    default=None,
    help="Apparent file size or allocated disk usage",
)
@click.option("--follow-symlinks", is_flag=True, help="Follow symbolic links while measuring")
@click.option("--json", "json_output", is_flag=True, help="Print the report as JSON")
@click.option("--show-updates", is_flag=True, help="Print each entry to stderr as soon as it is measured")
def scan(
    path: Path | None,
    expand_paths: tuple[Path, ...],
    config: Path | None,
    log_level: str | None,
    workers: int | None,
    hidden: bool | None,
    exclude_patterns: tuple[str, ...],
    mode: str | None,
    follow_symlinks: bool,
    json_output: bool,
    show_updates: bool,
) -> None:
    """Measure PATH (the filesystem root when omitted), largest entries first."""
    from storage_freer.app.runner import ApplicationRunner, ScanOptions

    runner = ApplicationRunner(
        ScanOptions(
            root=path,
            expand_paths=expand_paths,
            config_path=config,
            log_level=log_level,
            max_workers=workers,
            include_hidden=hidden,
            exclude_patterns=exclude_patterns,
            size_mode=SizeMode(mode) if mode is not None else None,
            follow_symlinks=True if follow_symlinks else None,
            json_output=json_output,
            show_updates=show_updates,
        )
    )

    try:
        runner.run()
    except (ConfigurationError, EnvironmentVariableError) as e:
        raise click.ClickException(f"Configuration error:\n{e}") from e
    except KeyboardInterrupt:
        click.echo("\nScan interrupted", err=True)


@cli.command("format-bytes")
@click.argument("size", type=int)
def format_bytes_command(size: int) -> None:
    """Print SIZE bytes in human-readable form."""
    click.echo(format_bytes(size))
