"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from helpers import TreeLayout, build_tree


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[TreeLayout], Path]:
    """Factory building a directory tree under a fresh temporary root."""

    def factory(layout: TreeLayout) -> Path:
        return build_tree(tmp_path / "root", layout)

    return factory


@pytest.fixture
def scenario_tree(make_tree: Callable[[TreeLayout], Path]) -> Path:
    """Root with a 100-byte file ``a``, a directory ``b`` and ``c/d`` of 50 bytes.

    Combined with a filesystem denying ``b`` this is the canonical
    partial-failure scenario: total 150, permission flag set, order a, c, b.
    """
    return make_tree({"a": 100, "b": {"inner": 10}, "c": {"d": 50}})
