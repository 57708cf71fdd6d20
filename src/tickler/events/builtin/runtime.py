"""``python_version(*constraints)`` -- checks the running interpreter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tickler.events.requirement import PythonVersion, Requirement

if TYPE_CHECKING:
    from tickler.events.context import EventContext


def python_version(ctx: EventContext, *requirements: str) -> str | None:
    requirement = Requirement.parse(*requirements, scheme=PythonVersion)
    current = ctx.runtime_version
    if requirement.satisfied_by(current):
        return f"The currently installed version of Python {current} is {requirement}."
    return None
