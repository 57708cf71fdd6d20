"""Built-in checks and their registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tickler.events.builtin.date import date
from tickler.events.builtin.github import (
    issue_close,
    issue_context,
    issue_pin,
    pull_request_close,
)
from tickler.events.builtin.packages import package_bump, package_release, pypi_release
from tickler.events.builtin.runtime import python_version
from tickler.events.registry import NUMBER

if TYPE_CHECKING:
    from tickler.events.registry import EventRegistry


def register_builtins(registry: EventRegistry) -> None:
    registry.register("date", date, str)
    registry.register("package_release", package_release, str, variadic=str)
    registry.register("pypi_release", pypi_release, str, variadic=str)
    registry.register("package_bump", package_bump, str, variadic=str)
    registry.register("python_version", python_version, variadic=str)
    registry.register("issue_close", issue_close, str, str, NUMBER)
    registry.register("pull_request_close", pull_request_close, str, str, NUMBER)
    registry.register("issue_pin", issue_pin, str, str, NUMBER)
    registry.register("issue_context", issue_context, str, str, NUMBER, informational=True)
    # Target of ``context: "org/repo#123"`` references
    registry.register("issue", issue_context, str, str, NUMBER, informational=True)


__all__ = [
    "register_builtins",
    "date",
    "package_release",
    "pypi_release",
    "package_bump",
    "python_version",
    "issue_close",
    "pull_request_close",
    "issue_pin",
    "issue_context",
]
