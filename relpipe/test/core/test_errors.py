"""Tests for relpipe.core.errors module."""

from __future__ import annotations

from relpipe.core.errors import ErrorCode


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        assert ErrorCode.OK == 0
        assert ErrorCode.USER_ERROR == 1
        assert ErrorCode.ENV_ERROR == 2
        assert ErrorCode.RELEASE_ERROR == 3
        assert ErrorCode.NETWORK_ERROR == 4
        assert ErrorCode.IO_ERROR == 5
        assert ErrorCode.RELEASE_NOT_NEEDED == 6

    def test_str(self) -> None:
        assert str(ErrorCode.RELEASE_NOT_NEEDED) == "release not needed"

    def test_success_flags(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.OK.is_error
        assert ErrorCode.IO_ERROR.is_error
