"""Registry of condition checks, keyed by event name.

Each entry declares its positional parameter types and an optional
variadic tail, so arity and type problems are reported as typed errors
before the check runs. Host applications add their own checks::

    registry = default_registry()

    @registry.event("trello_card_close", int)
    def trello_card_close(ctx, card_id):
        ...
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from tickler.exceptions import EventArgumentError, EventArityError, UnknownEventError

if TYPE_CHECKING:
    from tickler.events.context import EventContext
    from tickler.models.outcome import Unresolvable

ArgType = Union[type, tuple[type, ...]]
CheckResult = Union[str, "Unresolvable", None, bool]
EventFunction = Callable[..., CheckResult]

# Issue and pull request numbers may be written either way.
NUMBER: tuple[type, ...] = (int, str)


def _type_name(arg_type: ArgType) -> str:
    if isinstance(arg_type, tuple):
        return " or ".join(t.__name__ for t in arg_type)
    return arg_type.__name__


@dataclass(frozen=True)
class EventSpec:
    """A registered check.

    Attributes:
        name: Event name used in ``on:`` clauses.
        func: ``func(ctx, *arguments)`` returning a message (fired), None or
            False (not fired), or an Unresolvable.
        params: Types of the required positional arguments.
        variadic: Type of any extra arguments; None means no extras.
        informational: True for lookups that describe rather than trigger.
    """

    name: str
    func: EventFunction
    params: tuple[ArgType, ...] = ()
    variadic: ArgType | None = None
    informational: bool = False

    @property
    def expected_arity(self) -> str:
        if self.variadic is None:
            return str(len(self.params))
        return f"{len(self.params)}+"

    def check_arguments(self, arguments: Sequence[Any]) -> None:
        """Validate arity and argument types.

        Raises:
            EventArityError: Wrong number of arguments.
            EventArgumentError: An argument has the wrong type.
        """
        given = len(arguments)
        if given < len(self.params) or (
            self.variadic is None and given > len(self.params)
        ):
            raise EventArityError(self.name, given, self.expected_arity)

        for index, argument in enumerate(arguments):
            expected = self.params[index] if index < len(self.params) else self.variadic
            if not isinstance(argument, expected):  # type: ignore[arg-type]
                raise EventArgumentError(
                    f"argument {index + 1} must be {_type_name(expected)}, "  # type: ignore[arg-type]
                    f"got {type(argument).__name__} {argument!r}"
                )

    def __call__(self, ctx: EventContext, *arguments: Any) -> CheckResult:
        return self.func(ctx, *arguments)


class EventRegistry:
    """Mapping of event name -> EventSpec. Extend it before a run starts."""

    def __init__(self, specs: Sequence[EventSpec] = ()) -> None:
        self._specs: dict[str, EventSpec] = {}
        for spec in specs:
            self.add(spec)

    def add(self, spec: EventSpec, *, replace: bool = False) -> EventSpec:
        """Register a prepared spec.

        Raises ValueError if the name is taken and ``replace`` is False.
        """
        if spec.name in self._specs and not replace:
            raise ValueError(
                f"Event '{spec.name}' is already registered. "
                f"Pass replace=True to override it."
            )
        self._specs[spec.name] = spec
        return spec

    def register(
        self,
        name: str,
        func: EventFunction,
        *params: ArgType,
        variadic: ArgType | None = None,
        informational: bool = False,
        replace: bool = False,
    ) -> EventSpec:
        """Register ``func`` under ``name`` with the given parameter types."""
        return self.add(
            EventSpec(
                name=name,
                func=func,
                params=tuple(params),
                variadic=variadic,
                informational=informational,
            ),
            replace=replace,
        )

    def event(
        self,
        name: str,
        *params: ArgType,
        variadic: ArgType | None = None,
        informational: bool = False,
        replace: bool = False,
    ) -> Callable[[EventFunction], EventFunction]:
        """Decorator form of :meth:`register`."""

        def decorator(func: EventFunction) -> EventFunction:
            self.register(
                name,
                func,
                *params,
                variadic=variadic,
                informational=informational,
                replace=replace,
            )
            return func

        return decorator

    def unregister(self, name: str) -> None:
        self._specs.pop(name, None)

    def get(self, name: str) -> EventSpec | None:
        return self._specs.get(name)

    def resolve(self, name: str) -> EventSpec:
        """Return the spec for ``name``.

        Raises:
            UnknownEventError: If nothing is registered under ``name``.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownEventError(name)
        return spec

    def copy(self) -> EventRegistry:
        """Independent registry with the same entries."""
        clone = EventRegistry()
        clone._specs = copy.copy(self._specs)
        return clone

    @property
    def names(self) -> set[str]:
        return set(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


def default_registry() -> EventRegistry:
    """A fresh registry holding every built-in check."""
    from tickler.events.builtin import register_builtins

    registry = EventRegistry()
    register_builtins(registry)
    return registry
