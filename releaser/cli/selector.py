"""Arrow-key option picker used for release checkpoints.

One selector at a time owns the terminal: it switches stdin to raw mode on
entry, hides the cursor, re-renders its option list in place on every
arrow key and restores the terminal on every exit path (including errors)
before returning.

States::

    rendering -> awaiting_key -> awaiting_key   (up / down)
                              -> selected       (enter)
                              -> cancelled      (Ctrl-C / Ctrl-D)
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass
from typing import Generic, Literal, TextIO, TypeVar

from releaser.release.prompt import Choice

T = TypeVar("T")
V = TypeVar("V")

Key = Literal["up", "down", "enter", "interrupt", "other"]
SelectorState = Literal["rendering", "awaiting_key", "selected", "cancelled"]

_ICON = "■"
_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_CLEAR_LINE = "\x1b[2K"

_active: Selector[object] | None = None


@dataclass(frozen=True, slots=True)
class SelectorOption(Generic[T]):
    label: str
    value: T


@dataclass(frozen=True, slots=True)
class SelectorResult(Generic[T]):
    action: Literal["select", "cancel"]
    value: T | None
    index: int


def is_interactive_terminal() -> bool:
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def decode_key(seq: str) -> Key:
    """Map a raw key sequence to a selector key."""
    if seq in ("\r", "\n"):
        return "enter"
    # Ctrl-C and Ctrl-D
    if seq in ("\x03", "\x04"):
        return "interrupt"
    if seq in ("\x1b[A", "\x1bOA"):
        return "up"
    if seq in ("\x1b[B", "\x1bOB"):
        return "down"
    return "other"


def move_index(index: int, delta: int, length: int) -> int:
    """Move ``index`` by ``delta`` wrapping at both ends of ``[0, length)``."""
    if length < 1:
        raise ValueError("cannot move within an empty option list")
    return (index + delta) % length


def _read_key() -> Key:
    """Read one key from a stdin that is already in raw mode."""
    if os.name == "nt":
        import msvcrt

        ch = msvcrt.getwch()
        if ch in ("\x00", "\xe0"):
            ch2 = msvcrt.getwch()
            if ch2 == "H":
                return "up"
            if ch2 == "P":
                return "down"
            return "other"
        return decode_key(ch)

    seq = sys.stdin.read(1)
    if seq == "\x1b":
        seq += sys.stdin.read(1)
        if seq[-1] in ("[", "O"):
            seq += sys.stdin.read(1)
    return decode_key(seq)


@contextmanager
def _posix_raw_mode() -> Iterator[None]:
    import termios
    import tty

    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)


def _raw_mode() -> AbstractContextManager[None]:
    # msvcrt.getwch already reads unbuffered, unechoed keys.
    if os.name == "nt":
        return nullcontext()
    return _posix_raw_mode()


class Selector(Generic[T]):
    """Single-use picker over ``options``.

    ``read_key``, ``out`` and ``raw_mode`` default to the real terminal and
    are injectable for tests.
    """

    def __init__(
        self,
        label: str,
        options: Sequence[SelectorOption[T]],
        *,
        selected_msg: str | None = None,
        read_key: Callable[[], Key] | None = None,
        out: TextIO | None = None,
        raw_mode: Callable[[], AbstractContextManager[None]] | None = None,
    ) -> None:
        if len(options) < 2:
            raise ValueError("selector requires at least two options")
        self.label = label
        self.options = list(options)
        self.selected_msg = selected_msg
        self.index = 0
        self.state: SelectorState = "rendering"
        self._read_key = read_key or _read_key
        self._out = out or sys.stdout
        self._raw_mode = raw_mode or _raw_mode
        self._rendered_lines = 0

    def run(self) -> SelectorResult[T]:
        """Take the terminal, wait for a choice and give the terminal back.

        Raises:
            RuntimeError: Another selector is already active.
        """
        global _active
        if _active is not None:
            raise RuntimeError("another selector already owns terminal input")
        _active = self

        try:
            with self._raw_mode():
                self._write(_HIDE_CURSOR)
                try:
                    result = self._loop()
                finally:
                    self._write(_SHOW_CURSOR)
        finally:
            _active = None

        if result.action == "select" and self.selected_msg:
            shown = self._paint(str(result.value), "1", "34")
            self._write(f"\n {self.selected_msg.replace('%s', shown)}\n\n")
        return result

    def _loop(self) -> SelectorResult[T]:
        self._render()
        self.state = "awaiting_key"

        while True:
            match self._read_key():
                case "up":
                    self.index = move_index(self.index, -1, len(self.options))
                    self._render()
                case "down":
                    self.index = move_index(self.index, 1, len(self.options))
                    self._render()
                case "enter":
                    self.state = "selected"
                    return SelectorResult(
                        action="select", value=self.options[self.index].value, index=self.index
                    )
                case "interrupt":
                    self.state = "cancelled"
                    return SelectorResult(action="cancel", value=None, index=self.index)
                case _:
                    continue

    def render_lines(self) -> list[str]:
        lines = [self._paint(self.label, "1", "33"), ""]
        for i, opt in enumerate(self.options):
            if i == self.index:
                lines.append(self._paint(f"> {_ICON} {opt.label}", "1", "34"))
            else:
                lines.append(f"  {self._paint(_ICON, '2')} {opt.label}")
        return lines

    def _render(self) -> None:
        lines = self.render_lines()
        parts: list[str] = []
        if self._rendered_lines:
            # Back to the first line of the previous render.
            parts.append(f"\x1b[{self._rendered_lines}F")
        # Raw mode disables newline translation, so every line ends in \r\n.
        parts.extend(f"{_CLEAR_LINE}{line}\r\n" for line in lines)
        self._write("".join(parts))
        self._rendered_lines = len(lines)

    def _color_enabled(self) -> bool:
        isatty = getattr(self._out, "isatty", None)
        if isatty is None or not isatty():
            return False
        if os.getenv("NO_COLOR") is not None:
            return False
        return os.getenv("TERM", "").lower() != "dumb"

    def _paint(self, text: str, *codes: str) -> str:
        if not codes or not self._color_enabled():
            return text
        return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()


def choose(
    label: str,
    choices: Sequence[Choice[V]],
    *,
    selected_msg: str | None = None,
) -> V | None:
    """Interactive checkpoint prompt; None when the operator cancelled."""
    if not is_interactive_terminal():
        raise RuntimeError("interactive selector requires a TTY")

    options = [SelectorOption(label=c.label, value=c.value) for c in choices]
    result = Selector(label, options, selected_msg=selected_msg).run()
    if result.action == "cancel":
        return None
    return result.value
