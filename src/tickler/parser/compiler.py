"""Compiles a tagged comment line into a Directive.

The compiler never raises: every syntax or semantic problem becomes an
entry in ``Directive.parse_errors``.

Recognized keywords::

    on:      event call, e.g. on: date('2025-01-01')   (repeatable)
    to:      assignee string (repeatable, duplicates kept)
    owner:   owner email address
    context: issue reference "org/repo#123"

Unknown keywords are ignored.
"""

from __future__ import annotations

import logging
import re

from tickler.exceptions import DirectiveSyntaxError
from tickler.models.directive import Directive, Event, SourceLocation
from tickler.parser.nodes import CallNode, KeywordNode, StringNode
from tickler.parser.parser import parse_call

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CONTEXT_PATTERN = re.compile(r"^([\w.-]+)/([\w.-]+)#(\d+)$")

CONTEXT_EVENT = "issue"


class _DirectiveBuilder:
    """Accumulates the pieces of a Directive while keywords are visited."""

    def __init__(self, location: SourceLocation) -> None:
        self.location = location
        self.events: list[Event] = []
        self.assignees: list[str] = []
        self.owner: str | None = None
        self.context: Event | None = None
        self.errors: list[str] = []

    def visit(self, keyword: KeywordNode) -> None:
        handler = getattr(self, f"_visit_{keyword.key}", None)
        if handler is not None:
            handler(keyword)

    def _visit_on(self, keyword: KeywordNode) -> None:
        value = keyword.value
        if isinstance(value, CallNode) and value.has_literal_arguments:
            self.events.append(
                Event(
                    method_name=value.name,
                    arguments=value.literal_arguments,
                    source=value.source,
                    location=self.location,
                )
            )
        else:
            self.errors.append(f"Incorrect `on:` event format: {value.source}")

    def _visit_to(self, keyword: KeywordNode) -> None:
        value = keyword.value
        if isinstance(value, StringNode):
            self.assignees.append(value.value)
        else:
            self.errors.append(
                f"Incorrect `to:` assignee format: {value.source}. "
                f"Assignees must be strings"
            )

    def _visit_owner(self, keyword: KeywordNode) -> None:
        value = keyword.value
        if isinstance(value, StringNode) and EMAIL_PATTERN.match(value.value):
            self.owner = value.value
        else:
            self.errors.append(
                f"Incorrect `owner:` format: {value.source}. "
                f"Expected an email address"
            )

    def _visit_context(self, keyword: KeywordNode) -> None:
        value = keyword.value
        match = (
            CONTEXT_PATTERN.match(value.value) if isinstance(value, StringNode) else None
        )
        if match is None:
            self.errors.append(
                f"Incorrect `context:` format: {value.source}. "
                f'Expected "org/repo#number"'
            )
            return
        self.context = Event(
            method_name=CONTEXT_EVENT,
            arguments=match.groups(),
            source=value.source,
            location=self.location,
        )


def strip_comment_marker(text: str) -> str:
    """``"#   TODO(...)"`` -> ``"TODO(...)"``."""
    return re.sub(r"^\s*#\s*", "", text, count=1)


def compile_directive(
    text: str,
    *,
    body: str = "",
    location: SourceLocation | None = None,
) -> Directive:
    """Compile the tag line ``text`` into a Directive.

    Args:
        text: The tag line, with or without its leading comment marker.
        body: Continuation text to attach verbatim.
        location: File and line range of the comment block.

    Returns:
        A Directive. Problems are reported in ``parse_errors``.
    """
    location = location or SourceLocation()
    source = strip_comment_marker(text)

    try:
        call = parse_call(source)
    except DirectiveSyntaxError as exc:
        logger.debug("Unparsable directive at %s: %s", location, exc)
        return Directive(
            tag=source.split("(", 1)[0].strip(),
            body=body,
            location=location,
            parse_errors=(f"Unable to parse directive `{source.strip()}`: {exc}",),
        )

    builder = _DirectiveBuilder(location)
    for keyword in call.keywords:
        builder.visit(keyword)

    return Directive(
        tag=call.name,
        events=tuple(builder.events),
        assignees=tuple(builder.assignees),
        owner=builder.owner,
        context=builder.context,
        body=body,
        location=location,
        parse_errors=tuple(builder.errors),
    )
