from __future__ import annotations

from releaser.core.errors import ErrorCode


def test_exit_code_values() -> None:
    assert int(ErrorCode.OK) == 0
    assert int(ErrorCode.FAILURE) == 1
