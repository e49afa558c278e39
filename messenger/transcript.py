"""
Step-by-step record of one SMTP conversation.

Every command/response pair is kept in order together with its outcome:
`Ok` when the server answered with the expected code (or the step is not
checked) and `Mismatch` otherwise. The transcript is the diagnostic trail
returned with every send.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional, Union

UNREADABLE_RESPONSE = "Unable to fetch expected response."


@dataclass(frozen=True)
class Ok:
    response: str


@dataclass(frozen=True)
class Mismatch:
    expected: int
    got: Optional[int]
    response: str


StepOutcome = Union[Ok, Mismatch]


@dataclass(frozen=True)
class Step:
    """One command sent (if any) and the reply it produced."""

    name: str
    command: str
    response: str
    outcome: StepOutcome

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Ok)


@dataclass
class Transcript:
    steps: list[Step] = field(default_factory=list)

    def append(self, step: Step) -> Step:
        self.steps.append(step)
        return step

    @property
    def success(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def first_mismatch(self) -> Optional[Step]:
        return next((step for step in self.steps if not step.ok), None)

    def names(self) -> list[str]:
        """Step names in the order they ran."""
        return [step.name for step in self.steps]

    def to_dict(self) -> dict[str, Any]:
        """
        Responses keyed by step name.

        A step that ran more than once (e.g. `hello` around STARTTLS, or `to`
        with several recipients) maps to the list of its responses.
        """
        result: dict[str, Any] = {}
        for step in self.steps:
            response = step.response.strip()
            if step.name not in result:
                result[step.name] = response
            elif isinstance(result[step.name], list):
                result[step.name].append(response)
            else:
                result[step.name] = [result[step.name], response]
        return result

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


__all__ = ["Mismatch", "Ok", "Step", "StepOutcome", "Transcript", "UNREADABLE_RESPONSE"]
