"""Evaluator -- runs a Directive's events against the check registry.

Events are tried in source order and the first one that fires wins. Every
event is resolved and argument-checked before any check runs, so a typo in
the second ``on:`` clause is reported even when the first one would fire.
A check that raises stops evaluation of that Directive only.
"""

from __future__ import annotations

import dataclasses
import logging

from tickler.events.context import EventContext
from tickler.events.registry import EventRegistry, EventSpec, default_registry
from tickler.exceptions import ContextOnlyEventError, EventError
from tickler.models.directive import Directive, Event, event_can_use_context
from tickler.models.outcome import (
    EvaluationError,
    EvaluationOutcome,
    NotSatisfied,
    Satisfied,
    Unresolvable,
)

logger = logging.getLogger(__name__)


def _format_arguments(event: Event) -> str:
    return "[" + ", ".join(repr(argument) for argument in event.arguments) + "]"


def _describe(directive: Directive, event: Event) -> str:
    return (
        f"{directive.location} on event `{event.method_name}` "
        f"with arguments {_format_arguments(event)}"
    )


class Evaluator:
    """Evaluates Directives using the checks in ``registry``.

    Usage::

        with EventContext(config) as ctx:
            evaluator = Evaluator(ctx)
            outcome = evaluator.evaluate(directive)
            if isinstance(outcome, Satisfied):
                ...
    """

    def __init__(
        self, context: EventContext, registry: EventRegistry | None = None
    ) -> None:
        self.context = context
        self.registry = registry if registry is not None else default_registry()

    # ------------------------------------------------------------------
    # Trigger evaluation
    # ------------------------------------------------------------------

    def _resolve_all(
        self, directive: Directive
    ) -> tuple[list[tuple[Event, EventSpec]], list[str]]:
        resolved: list[tuple[Event, EventSpec]] = []
        errors: list[str] = []
        for event in directive.events:
            try:
                spec = self.registry.resolve(event.method_name)
                if spec.informational:
                    raise ContextOnlyEventError(spec.name)
                spec.check_arguments(event.arguments)
            except EventError as exc:
                errors.append(
                    f"Error while parsing {_describe(directive, event)}: {exc}"
                )
                continue
            resolved.append((event, spec))
        return resolved, errors

    def evaluate(self, directive: Directive) -> EvaluationOutcome:
        """Evaluate ``directive`` and return the first firing outcome.

        Returns:
            Satisfied or Unresolvable for the first event that fires,
            NotSatisfied if none does, EvaluationError if the Directive is
            invalid, references unknown or misused events, or a check failed.
        """
        if not directive.is_valid:
            errors = directive.parse_errors or (
                f"{directive.location}: directive has no events or no assignees",
            )
            return EvaluationError(
                message=f"Invalid directive at {directive.location}",
                errors=tuple(errors),
            )

        resolved, errors = self._resolve_all(directive)
        if errors:
            for error in errors:
                logger.error(error)
            return EvaluationError(message=errors[0], errors=tuple(errors))

        for event, spec in resolved:
            try:
                result = spec(self.context, *event.arguments)
            except Exception as exc:
                message = f"Error while evaluating {_describe(directive, event)}: {exc}"
                logger.error(
                    "Event '%s' raised %s: %s",
                    event.method_name,
                    type(exc).__name__,
                    exc,
                )
                return EvaluationError(message=message, errors=(message,))

            if isinstance(result, Unresolvable):
                return dataclasses.replace(result, event=event)
            if isinstance(result, str):
                return Satisfied(message=result, event=event)
            logger.debug("Event %s did not fire at %s", event, directive.location)

        return NotSatisfied()

    # ------------------------------------------------------------------
    # Context lookups
    # ------------------------------------------------------------------

    def evaluate_context(
        self, directive: Directive, fired_event: Event | None = None
    ) -> str | None:
        """Describe the Directive's ``context:`` reference, if any.

        Lookup failures are logged and yield None; context never blocks
        delivery.
        """
        context = directive.context
        if context is None:
            return None
        if fired_event is not None and not event_can_use_context(fired_event.method_name):
            return None

        try:
            spec = self.registry.resolve(context.method_name)
            spec.check_arguments(context.arguments)
            result = spec(self.context, *context.arguments)
        except Exception as exc:
            logger.warning(
                "Context lookup %s failed at %s: %s", context, directive.location, exc
            )
            return None
        if isinstance(result, Unresolvable):
            return None
        return result if isinstance(result, str) else None
