from __future__ import annotations

from releaser.core.structured import as_str_dict, get_int, get_str, get_table, is_str_dict


def test_is_str_dict() -> None:
    assert is_str_dict({"a": 1})
    assert not is_str_dict({1: "a"})
    assert not is_str_dict(["a"])


def test_as_str_dict() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict("nope") is None


def test_get_str_strips_and_drops_empty() -> None:
    table: dict[str, object] = {"a": "  x ", "b": "   ", "c": 3}
    assert get_str(table, "a") == "x"
    assert get_str(table, "b") is None
    assert get_str(table, "c") is None
    assert get_str(table, "missing") is None


def test_get_int_excludes_bool() -> None:
    table: dict[str, object] = {"n": 3, "flag": True, "s": "3"}
    assert get_int(table, "n") == 3
    assert get_int(table, "flag") is None
    assert get_int(table, "s") is None


def test_get_table() -> None:
    table: dict[str, object] = {"scripts": {"test": "jest"}, "name": "app"}
    assert get_table(table, "scripts") == {"test": "jest"}
    assert get_table(table, "name") is None
