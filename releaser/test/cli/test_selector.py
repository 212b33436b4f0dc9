"""Tests for the interactive selector, driven by scripted keys."""

from __future__ import annotations

import io
from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from releaser.cli import selector as selector_mod
from releaser.cli.selector import (
    Key,
    Selector,
    SelectorOption,
    choose,
    decode_key,
    move_index,
)
from releaser.release.prompt import Choice

OPTIONS = [
    SelectorOption(label="1.2.4 [Patch]", value="1.2.4"),
    SelectorOption(label="1.3.0 [Minor]", value="1.3.0"),
    SelectorOption(label="2.0.0 [Major]", value="2.0.0"),
]


class FakeTerminal:
    def __init__(self, keys: list[Key]) -> None:
        self.keys = list(keys)
        self.out = io.StringIO()
        self.raw = False
        self.entered = 0

    def read_key(self) -> Key:
        return self.keys.pop(0)

    @contextmanager
    def raw_mode(self) -> Iterator[None]:
        self.raw = True
        self.entered += 1
        try:
            yield
        finally:
            self.raw = False


def _selector(term: FakeTerminal, **kwargs: object) -> Selector[str]:
    return Selector(
        "Choose version:",
        OPTIONS,
        read_key=term.read_key,
        out=term.out,
        raw_mode=term.raw_mode,
        **kwargs,  # type: ignore[arg-type]
    )


class TestDecodeKey:
    @pytest.mark.parametrize(
        ("seq", "key"),
        [
            ("\r", "enter"),
            ("\n", "enter"),
            ("\x03", "interrupt"),
            ("\x04", "interrupt"),
            ("\x1b[A", "up"),
            ("\x1b[B", "down"),
            ("\x1bOA", "up"),
            ("x", "other"),
            ("\x1b[C", "other"),
        ],
    )
    def test_decode(self, seq: str, key: Key) -> None:
        assert decode_key(seq) == key


class TestMoveIndex:
    @pytest.mark.parametrize("length", [2, 3, 7])
    def test_wraps_at_both_ends(self, length: int) -> None:
        assert move_index(0, -1, length) == length - 1
        assert move_index(length - 1, 1, length) == 0

    @pytest.mark.parametrize("length", [2, 5])
    def test_always_in_range(self, length: int) -> None:
        index = 0
        for delta in [1, 1, -1, -1, -1, 1, 1, 1, 1, -1] * 3:
            index = move_index(index, delta, length)
            assert 0 <= index < length

    def test_empty_list(self) -> None:
        with pytest.raises(ValueError):
            move_index(0, 1, 0)


class TestSelector:
    def test_enter_selects_highlighted(self) -> None:
        term = FakeTerminal(["down", "enter"])
        sel = _selector(term)

        result = sel.run()

        assert result.action == "select"
        assert result.value == "1.3.0"
        assert result.index == 1
        assert sel.state == "selected"

    def test_up_wraps_to_last(self) -> None:
        term = FakeTerminal(["up", "enter"])
        assert _selector(term).run().value == "2.0.0"

    def test_other_keys_ignored(self) -> None:
        term = FakeTerminal(["other", "down", "other", "down", "down", "enter"])
        assert _selector(term).run().value == "1.2.4"

    def test_interrupt_cancels(self) -> None:
        term = FakeTerminal(["down", "interrupt"])
        sel = _selector(term)

        result = sel.run()

        assert result.action == "cancel"
        assert result.value is None
        assert sel.state == "cancelled"

    def test_raw_mode_released_and_cursor_restored(self) -> None:
        term = FakeTerminal(["interrupt"])

        _selector(term).run()

        assert term.entered == 1
        assert term.raw is False
        output = term.out.getvalue()
        assert output.index("\x1b[?25l") < output.index("\x1b[?25h")
        assert output.endswith("\x1b[?25h")

    def test_terminal_restored_when_reading_fails(self) -> None:
        term = FakeTerminal([])

        with pytest.raises(IndexError):
            _selector(term).run()

        assert term.raw is False
        assert term.out.getvalue().endswith("\x1b[?25h")
        assert selector_mod._active is None

    def test_rerender_overwrites_in_place(self) -> None:
        term = FakeTerminal(["down", "enter"])

        _selector(term).run()

        output = term.out.getvalue()
        # label, blank line and three options
        assert output.count("\x1b[5F") == 1
        assert output.count("Choose version:") == 2

    def test_render_lines_marks_highlight(self) -> None:
        sel = _selector(FakeTerminal([]))
        sel.index = 2
        lines = sel.render_lines()
        assert lines[0] == "Choose version:"
        assert lines[2] == "  ■ 1.2.4 [Patch]"
        assert lines[4] == "> ■ 2.0.0 [Major]"

    def test_selected_msg_echoed(self) -> None:
        term = FakeTerminal(["enter"])

        _selector(term, selected_msg="Bumping version to: %s").run()

        assert "Bumping version to: 1.2.4" in term.out.getvalue()

    def test_selected_msg_not_echoed_on_cancel(self) -> None:
        term = FakeTerminal(["interrupt"])

        _selector(term, selected_msg="Bumping version to: %s").run()

        assert "Bumping" not in term.out.getvalue()

    def test_requires_two_options(self) -> None:
        with pytest.raises(ValueError, match="at least two"):
            Selector("pick", OPTIONS[:1])

    def test_only_one_active_selector(self) -> None:
        inner_error: list[BaseException] = []
        outer_term = FakeTerminal([])

        def read_key() -> Key:
            inner = _selector(FakeTerminal(["enter"]))
            try:
                inner.run()
            except RuntimeError as e:
                inner_error.append(e)
            return "enter"

        outer = Selector(
            "outer", OPTIONS, read_key=read_key, out=outer_term.out, raw_mode=outer_term.raw_mode
        )
        assert outer.run().action == "select"
        assert len(inner_error) == 1
        assert selector_mod._active is None


class TestChoose:
    def test_requires_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(selector_mod, "is_interactive_terminal", lambda: False)
        with pytest.raises(RuntimeError, match="TTY"):
            choose("pick", [Choice("a", 1), Choice("b", 2)])

    def test_maps_choices_and_cancel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(selector_mod, "is_interactive_terminal", lambda: True)
        results: list[selector_mod.SelectorResult[object]] = [
            selector_mod.SelectorResult(action="select", value=2, index=1),
            selector_mod.SelectorResult(action="cancel", value=None, index=0),
        ]
        monkeypatch.setattr(selector_mod.Selector, "run", lambda self: results.pop(0))

        assert choose("pick", [Choice("a", 1), Choice("b", 2)]) == 2
        assert choose("pick", [Choice("a", 1), Choice("b", 2)]) is None
