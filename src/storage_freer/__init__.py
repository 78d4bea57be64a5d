"""storage-freer - find out what is using your disk space.

This package computes disk usage for a directory tree concurrently,
reports it incrementally to observers, tolerates unreadable subtrees and
supports lazy expansion of directories for tree-shaped consumers.
"""

from storage_freer.__main__ import main

__all__ = ["main"]
