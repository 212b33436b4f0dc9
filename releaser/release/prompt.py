"""Operator checkpoints as seen by the pipeline.

The pipeline only knows a ``Prompt``: give it a label and choices, get back
the chosen value or None when the operator cancelled. The CLI backs it with
the interactive terminal selector; tests back it with a scripted list.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Choice(Generic[T]):
    label: str
    value: T


class Prompt(Protocol):
    def __call__(
        self,
        label: str,
        choices: Sequence[Choice[T]],
        *,
        selected_msg: str | None = None,
    ) -> T | None: ...


def confirm(prompt: Prompt, label: str, *, yes: str, no: str) -> bool | None:
    """Boolean checkpoint; None when the operator cancelled."""
    return prompt(label, [Choice(yes, True), Choice(no, False)])
