"""Shared types for storage-freer."""

from storage_freer.types.aliases import EventData, StaleCheck, UpdateCallback
from storage_freer.types.models import (
    ACCESS_DENIED,
    PERMISSION_DENIED_MESSAGE,
    BatchSummary,
    FileSystemEntry,
    ListedEntry,
    MeasuredSize,
    ScanPhase,
    ScanSnapshot,
    ScanState,
    VolumeUsage,
)
from storage_freer.types.protocols import AccessProvider, SizeMeasurer

__all__ = [
    # Models
    "ACCESS_DENIED",
    "PERMISSION_DENIED_MESSAGE",
    "BatchSummary",
    "FileSystemEntry",
    "ListedEntry",
    "MeasuredSize",
    "ScanPhase",
    "ScanSnapshot",
    "ScanState",
    "VolumeUsage",
    # Protocols
    "AccessProvider",
    "SizeMeasurer",
    # Aliases
    "EventData",
    "StaleCheck",
    "UpdateCallback",
]
