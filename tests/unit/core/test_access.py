"""Tests for the filesystem access capability."""

from __future__ import annotations

from pathlib import Path

from helpers import FaultyFileSystem
from storage_freer.core.access import ProbeAccessProvider, StaticAccessProvider
from storage_freer.types.protocols import AccessProvider


class TestProbeAccessProvider:
    """Test the probing access provider."""

    def test_readable_probe_means_full_access(self, tmp_path: Path) -> None:
        """Listing the probe directory successfully grants full access."""
        assert ProbeAccessProvider(tmp_path).has_full_access()

    def test_unreadable_probe(self, tmp_path: Path) -> None:
        """A denied probe directory reports no full access."""
        provider = ProbeAccessProvider(tmp_path, filesystem=FaultyFileSystem(deny_list=[tmp_path]))

        assert not provider.has_full_access()

    def test_missing_probe(self, tmp_path: Path) -> None:
        """A probe that does not exist reports no full access."""
        assert not ProbeAccessProvider(tmp_path / "missing").has_full_access()

    def test_request_access_is_recorded_not_granted(self, tmp_path: Path) -> None:
        """Grants are out of scope: requests are recorded and refused."""
        provider = ProbeAccessProvider(tmp_path)

        assert provider.request_access(tmp_path / "private") is False
        assert provider.requested == [tmp_path / "private"]

    def test_satisfies_protocol(self, tmp_path: Path) -> None:
        """Both providers satisfy the runtime-checkable protocol."""
        assert isinstance(ProbeAccessProvider(tmp_path), AccessProvider)
        assert isinstance(StaticAccessProvider(), AccessProvider)


class TestStaticAccessProvider:
    """Test the fixed-answer provider."""

    def test_fixed_answers(self) -> None:
        """Answers mirror the constructor flag."""
        assert StaticAccessProvider(full_access=True).has_full_access()
        assert not StaticAccessProvider(full_access=False).has_full_access()
        assert not StaticAccessProvider(full_access=False).request_access(Path("/x"))
