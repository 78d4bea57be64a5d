"""Application entry point for storage-freer.

Delegates to the click command group; configuration errors surface as click
errors with exit code 1.
"""

from __future__ import annotations

from storage_freer.app.cli import cli

__all__ = ["main"]


def main() -> None:
    """Main entry point for the storage-freer command."""
    cli(prog_name="storage-freer")


if __name__ == "__main__":
    main()
