"""Capacity of the filesystem that holds a scan root."""

from __future__ import annotations

import logging
from pathlib import Path

import psutil

from storage_freer.types.models import VolumeUsage

logger = logging.getLogger(__name__)


def volume_usage(path: Path) -> VolumeUsage | None:
    """Read total, used and free bytes for the filesystem containing ``path``.

    Args:
        path: Any path on the filesystem of interest

    Returns:
        VolumeUsage, or None if the filesystem cannot be queried
    """
    try:
        usage = psutil.disk_usage(str(path))
    except OSError as exc:
        logger.debug("Cannot read volume usage", extra={"path": str(path), "error": str(exc)})
        return None
    return VolumeUsage(
        path=path,
        total=int(usage.total),
        used=int(usage.used),
        free=int(usage.free),
        percent=float(usage.percent),
    )
