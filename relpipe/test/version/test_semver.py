"""Tests for relpipe.version.semver."""

from __future__ import annotations

import pytest

from relpipe.version.semver import Version, parse_version


class TestParseVersion:
    @pytest.mark.parametrize("text", ["0.0.0", "1.2.3", "10.20.30"])
    def test_valid(self, text: str) -> None:
        parsed = parse_version(text)
        assert parsed is not None
        assert str(parsed) == text

    @pytest.mark.parametrize(
        "text", ["", "1.2", "1.2.3.4", "v1.2.3", "01.2.3", "1.02.3", "1.2.3-rc1", "1.2.3\n", " 1.2.3"]
    )
    def test_invalid(self, text: str) -> None:
        assert parse_version(text) is None


class TestBump:
    def test_patch(self) -> None:
        assert Version(1, 4, 2).bump() == Version(1, 4, 3)

    def test_minor_resets_patch(self) -> None:
        assert Version(1, 4, 2).bump("minor") == Version(1, 5, 0)

    def test_major_resets_lower(self) -> None:
        assert Version(1, 4, 2).bump("major") == Version(2, 0, 0)

    def test_ordering(self) -> None:
        assert Version(1, 9, 9) < Version(1, 10, 0) < Version(2, 0, 0)
