"""Notification text for a fired Directive.

The layout is fixed::

    Hello Jane :wave:,

    You have an assigned TODO in the `app/models.py` file (line 12).
    We are past the *2025-01-01* due date and your TODO is now ready ...

    <context lookup, if any>

    Here is the associated comment on your TODO:

    ```
    <body>
    ```

The comment section is left out entirely when the Directive has no body.
"""

from __future__ import annotations

from dataclasses import dataclass

from tickler.models.directive import Directive
from tickler.models.outcome import Channel, DeliveryTarget, FallbackChannel, User


@dataclass(frozen=True)
class Link:
    """A deep link to the Directive's source, rendered as ``<url|display>``."""

    url: str
    display: str

    def render(self) -> str:
        return f"<{self.url}|{self.display}>"


def greeting(target: DeliveryTarget) -> str:
    if isinstance(target, FallbackChannel):
        return (
            f"Hello :wave:,\n\n`{target.original_assignee}` had an assigned TODO "
            f"but this user or channel doesn't exist on Slack anymore."
        )
    if isinstance(target, User) and target.display_name:
        return f"Hello {target.display_name} :wave:,"
    return "Hello :wave:,"


def file_reference(directive: Directive, link: Link | None = None) -> str:
    if link is not None:
        return f"You have an assigned TODO in the {link.render()} file."
    ref = directive.location.line_reference
    where = f" (line {ref})" if ref else ""
    return f"You have an assigned TODO in the `{directive.file}` file{where}."


def format_message(
    directive: Directive,
    event_message: str,
    target: DeliveryTarget,
    *,
    context: str | None = None,
    link: Link | None = None,
) -> str:
    """Build the text delivered to ``target``."""
    lines = [
        greeting(target),
        "",
        file_reference(directive, link),
        event_message,
    ]
    if context:
        lines += ["", context]
    if directive.owner and isinstance(target, (Channel, FallbackChannel)):
        lines += ["", f"The owner of this TODO is `{directive.owner}`."]

    comment = directive.body.strip()
    if comment:
        lines += [
            "",
            "Here is the associated comment on your TODO:",
            "",
            "```",
            comment,
            "```",
        ]
    return "\n".join(lines) + "\n"
