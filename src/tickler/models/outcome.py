"""Evaluation outcomes and delivery targets.

Both are closed sets of small frozen variants; callers branch with
``isinstance``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from tickler.models.directive import Event


@dataclass(frozen=True)
class Satisfied:
    """The event's condition holds."""

    message: str
    event: Event | None = None


@dataclass(frozen=True)
class NotSatisfied:
    """No event fired."""


@dataclass(frozen=True)
class Unresolvable:
    """The check could not answer (e.g. unknown package, private issue).

    Not an error: the message explains why and is still delivered.
    """

    message: str
    event: Event | None = None


@dataclass(frozen=True)
class EvaluationError:
    """Looking up or running a check failed; the directive does not fire."""

    message: str
    errors: tuple[str, ...] = ()


EvaluationOutcome = Union[Satisfied, NotSatisfied, Unresolvable, EvaluationError]


def is_fired(outcome: EvaluationOutcome) -> bool:
    """Whether an outcome leads to a notification."""
    return isinstance(outcome, (Satisfied, Unresolvable))


@dataclass(frozen=True)
class User:
    """A chat user resolved from an email address."""

    id: str
    display_name: str = ""


@dataclass(frozen=True)
class Channel:
    """A channel identifier used directly."""

    id: str


@dataclass(frozen=True)
class FallbackChannel:
    """The configured fallback channel, standing in for an invalid assignee."""

    id: str
    original_assignee: str


DeliveryTarget = Union[User, Channel, FallbackChannel]
