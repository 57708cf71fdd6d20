"""Domain models for parsed directives.

A Directive is the structured form of one tagged comment block. Events are
the named condition checks embedded in its ``on:`` clauses. Both are
immutable once the compiler has built them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Events that make an assignee optional: they only pin a reference and are
# delivered to the owner (if any) rather than to named assignees.
ASSIGNEE_OPTIONAL_EVENTS: frozenset[str] = frozenset({"issue_pin"})

# Events that already point at an issue; a ``context:`` lookup adds nothing.
EVENTS_WITH_IMPLICIT_CONTEXT: frozenset[str] = frozenset(
    {"issue_close", "pull_request_close"}
)

EventArgument = str | int


@dataclass(frozen=True)
class SourceLocation:
    """Where a directive (or one of its events) lives."""

    file: str = "-"
    start_line: int | None = None
    end_line: int | None = None

    @property
    def line_reference(self) -> str | None:
        """``"5"`` for a single line, ``"5-7"`` for a block, None if unknown."""
        if self.start_line is None:
            return None
        if self.end_line is None or self.end_line == self.start_line:
            return str(self.start_line)
        return f"{self.start_line}-{self.end_line}"

    def __str__(self) -> str:
        ref = self.line_reference
        return f"{self.file}:{ref}" if ref else self.file


@dataclass(frozen=True)
class Event:
    """A single named condition check with literal arguments.

    Attributes:
        method_name: Name looked up in the evaluator's registry.
        arguments: String or integer literals, in source order.
        source: The original call text, used in error messages.
        location: Location of the enclosing directive.
    """

    method_name: str
    arguments: tuple[EventArgument, ...] = ()
    source: str = ""
    location: SourceLocation | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.arguments, tuple):
            object.__setattr__(self, "arguments", tuple(self.arguments))

    def __str__(self) -> str:
        if self.source:
            return self.source
        args = ", ".join(repr(a) for a in self.arguments)
        return f"{self.method_name}({args})"


@dataclass(frozen=True)
class Directive:
    """One tagged comment block, compiled.

    A Directive with parse errors is never evaluated. ``events`` and
    ``assignees`` keep source order; duplicate assignees are preserved.
    """

    tag: str = "TODO"
    events: tuple[Event, ...] = ()
    assignees: tuple[str, ...] = ()
    owner: str | None = None
    context: Event | None = None
    body: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)
    parse_errors: tuple[str, ...] = ()

    @property
    def file(self) -> str:
        return self.location.file

    @property
    def start_line(self) -> int | None:
        return self.location.start_line

    @property
    def end_line(self) -> int | None:
        return self.location.end_line

    @property
    def primary_event(self) -> Event | None:
        return self.events[0] if self.events else None

    @property
    def is_valid(self) -> bool:
        """Whether this directive is eligible for evaluation and delivery."""
        if self.parse_errors or not self.events:
            return False
        if not all(isinstance(event, Event) for event in self.events):
            return False
        if self.assignees:
            return True
        return self.events[0].method_name in ASSIGNEE_OPTIONAL_EVENTS

    @property
    def recipients(self) -> tuple[str, ...]:
        """Assignees to notify; falls back to the owner when none are named."""
        if self.assignees:
            return self.assignees
        return (self.owner,) if self.owner else ()


def event_can_use_context(method_name: str) -> bool:
    """Whether a ``context:`` lookup should accompany ``method_name`` firing."""
    return method_name not in EVENTS_WITH_IMPLICIT_CONTEXT
