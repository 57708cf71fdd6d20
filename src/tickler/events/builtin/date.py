"""``date(when)`` -- fires once the given date is in the past."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from tickler.exceptions import EventArgumentError

if TYPE_CHECKING:
    from tickler.events.context import EventContext

_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m",
    "%Y",
)


def parse_date(text: str) -> datetime:
    """Parse an ISO 8601 timestamp or one of a few common date spellings.

    Raises:
        EventArgumentError: If ``text`` is not a recognizable date.
    """
    value = text.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise EventArgumentError(f"Unable to parse {text!r} as a date")


def is_past(now: datetime, when: datetime) -> bool:
    """Compare ``now >= when``; naive values are read as local time."""
    if now.tzinfo is None:
        now = now.astimezone()
    if when.tzinfo is None:
        when = when.astimezone()
    return now >= when


def date(ctx: EventContext, on_date: str) -> str | None:
    if is_past(ctx.now, parse_date(on_date)):
        return (
            f"We are past the *{on_date}* due date and "
            f"your TODO is now ready to be addressed."
        )
    return None
