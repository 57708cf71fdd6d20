"""Tickler exception hierarchy.

All Tickler-specific exceptions inherit from TicklerError.
"""


class TicklerError(Exception):
    """Base exception for all Tickler errors."""


class ConfigError(TicklerError):
    """Raised when the startup configuration is missing or invalid."""


class DirectiveSyntaxError(TicklerError):
    """Raised when a directive's call expression cannot be parsed.

    Never escapes the compiler: it is converted into a parse error entry
    on the resulting Directive.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        if position is not None:
            message = f"{message} (at column {position + 1})"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Evaluation-time errors
# ---------------------------------------------------------------------------


class EventError(TicklerError):
    """Base for errors raised while evaluating an event."""


class UnknownEventError(EventError):
    """Raised when an event name is not present in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"undefined event `{name}`")


class EventArityError(EventError):
    """Raised when an event is called with the wrong number of arguments."""

    def __init__(self, name: str, given: int, expected: str) -> None:
        self.name = name
        self.given = given
        self.expected = expected
        super().__init__(
            f"wrong number of arguments (given {given}, expected {expected})"
        )


class ContextOnlyEventError(EventError):
    """Raised when a context lookup is used as an ``on:`` trigger."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"`{name}` is a context lookup, not a trigger; use it in `context:` instead"
        )


class EventArgumentError(EventError):
    """Raised when an event argument has the wrong type or an invalid value."""


class EventLookupError(EventError):
    """Raised when a check cannot reach or understand a remote service."""


# ---------------------------------------------------------------------------
# Delivery-time errors
# ---------------------------------------------------------------------------


class TransportError(TicklerError):
    """Base for errors raised while delivering a notification."""


class SlackAPIError(TransportError):
    """Slack answered 200 but the body carried ``ok: false``.

    Attributes:
        error_code: The ``error`` field of the response body.
        body: The full parsed response body.
    """

    def __init__(self, body: dict) -> None:
        self.body = body
        self.error_code: str | None = body.get("error")
        super().__init__(f"Slack API error: {self.error_code} (response body: {body})")


class SlackHTTPError(TransportError):
    """Slack answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Request to Slack failed {body}, code {status_code}")


class SlackRateLimitError(SlackHTTPError):
    """Slack answered 429.

    Attributes:
        retry_after: Seconds to wait before retrying (from the Retry-After
            header), or None if the header was absent or malformed.
    """

    def __init__(self, body: str = "", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(429, body)


class DeliveryDeadlineError(TransportError):
    """Raised instead of starting a request once the dispatch deadline has passed."""
