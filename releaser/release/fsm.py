from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from releaser.core.result import Err, Ok, Result
from releaser.release.errors import ReleaseFailure
from releaser.release.model import PipelineOutcome

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class StepAdvance(Generic[S]):
    session: S


@dataclass(frozen=True, slots=True)
class StepFinish:
    outcome: PipelineOutcome


StepOutcome = StepAdvance[S] | StepFinish
StepHandler = Callable[[S], Result[StepOutcome[S], ReleaseFailure]]
GetStep = Callable[[S], str]


def advance(session: S) -> StepAdvance[S]:
    return StepAdvance(session=session)


def finish(outcome: PipelineOutcome) -> StepFinish:
    return StepFinish(outcome=outcome)


def run_state_machine(
    *,
    initial_state: S,
    get_step: GetStep[S],
    handlers: Mapping[str, StepHandler[S]],
) -> Result[PipelineOutcome, ReleaseFailure]:
    """Drive ``handlers`` from ``initial_state`` until one finishes or fails.

    Raises:
        ValueError: A session names a step with no handler.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            raise ValueError(f"unknown release step: {step}")

        outcome = handler(current)
        if isinstance(outcome, Err):
            return outcome

        if isinstance(outcome.value, StepFinish):
            return Ok(outcome.value.outcome)

        current = outcome.value.session
