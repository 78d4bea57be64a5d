"""Filesystem access capability used to decide on permission prompts."""

from __future__ import annotations

import logging
from pathlib import Path

from .data.filesystem.fs import DEFAULT_FILESYSTEM, LocalFileSystem

logger = logging.getLogger(__name__)


class ProbeAccessProvider:
    """Access capability that probes a protected directory.

    ``has_full_access`` lists ``probe_path``; success means the process can
    read protected locations, so a permission prompt would not help. Access
    grants are not persisted here, so ``request_access`` only records the
    request and reports that nothing was granted.
    """

    def __init__(self, probe_path: Path, filesystem: LocalFileSystem | None = None) -> None:
        """Initialize the provider.

        Args:
            probe_path: Directory listed to test for broad access
            filesystem: Listing primitive
        """
        self.probe_path: Path = probe_path
        self.filesystem: LocalFileSystem = filesystem or DEFAULT_FILESYSTEM
        self.requested: list[Path] = []

    def has_full_access(self) -> bool:
        try:
            _ = self.filesystem.list_names(self.probe_path)
        except OSError as exc:
            logger.info(
                "Full access probe failed",
                extra={"probe_path": str(self.probe_path), "error": str(exc)},
            )
            return False
        return True

    def request_access(self, path: Path) -> bool:
        self.requested.append(path)
        logger.info("Access requested", extra={"path": str(path)})
        return False


class StaticAccessProvider:
    """Access capability with a fixed answer, for embedding and tests."""

    def __init__(self, full_access: bool = True) -> None:
        self.full_access: bool = full_access

    def has_full_access(self) -> bool:
        return self.full_access

    def request_access(self, path: Path) -> bool:  # pyright: ignore[reportUnusedParameter]
        return self.full_access
