"""Slack Web API client and transport.

SlackClient wraps the two endpoints we need (``users.lookupByEmail`` and
``chat.postMessage``) with httpx and retries 429 responses through tenacity,
sleeping for the server's Retry-After delay clamped to the configured
bounds.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import tenacity
from tenacity.wait import wait_base

from tickler.exceptions import (
    DeliveryDeadlineError,
    SlackAPIError,
    SlackHTTPError,
    SlackRateLimitError,
)
from tickler.http import build_client
from tickler.models.config import HttpConfig, SlackConfig
from tickler.models.outcome import Channel, DeliveryTarget, User

logger = logging.getLogger(__name__)

# Slack error codes meaning the recipient is gone; delivery moves to the
# fallback channel.
RECIPIENT_ERROR_CODES = frozenset({"users_not_found", "channel_not_found", "is_archived"})


def _parse_retry_after(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


class _RetryAfterWait(wait_base):
    """Wait for the Retry-After delay, clamped to ``[minimum, maximum]``.

    With a ``deadline`` (a ``time.monotonic()`` value) the wait never runs
    past it.
    """

    def __init__(
        self, minimum: float, maximum: float, deadline: float | None = None
    ) -> None:
        self.minimum = minimum
        self.maximum = maximum
        self.deadline = deadline

    def __call__(self, retry_state: tenacity.RetryCallState) -> float:
        delay = self.minimum
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            exc = outcome.exception()
            if isinstance(exc, SlackRateLimitError) and exc.retry_after is not None:
                delay = exc.retry_after
        delay = max(self.minimum, min(delay, self.maximum))
        if self.deadline is not None:
            delay = max(0.0, min(delay, self.deadline - time.monotonic()))
        return delay


class SlackClient:
    """Sync httpx client for the Slack Web API.

    Usage::

        with SlackClient(SlackConfig(token="xoxb-...")) as client:
            user = client.lookup_user_by_email("jane@example.com")
            client.post_message(user["user"]["id"], "Hello")
    """

    def __init__(
        self,
        config: SlackConfig,
        http: HttpConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.timeout = (http or HttpConfig()).timeout
        self.deadline: float | None = None
        self._client = build_client(
            config.base_url,
            http,
            headers={
                "Content-Type": "application/json; charset=utf8",
                "Authorization": f"Bearer {config.token}",
            },
            transport=transport,
        )

    def lookup_user_by_email(self, email: str) -> dict:
        """``GET /api/users.lookupByEmail``.

        Raises:
            SlackAPIError: ``ok: false`` (e.g. ``users_not_found``).
            SlackRateLimitError: Still rate limited after every attempt.
            SlackHTTPError: Any other non-2xx response.
        """
        return self._request("GET", "/api/users.lookupByEmail", params={"email": email})

    def post_message(self, channel: str, text: str) -> dict:
        """``POST /api/chat.postMessage``. Raises like lookup_user_by_email."""
        return self._request(
            "POST", "/api/chat.postMessage", json={"channel": channel, "text": text}
        )

    def set_deadline(self, deadline: float | None) -> None:
        """Stop retrying and starting requests at ``deadline`` (``time.monotonic()``)."""
        self.deadline = deadline

    def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception_type(SlackRateLimitError),
            wait=_RetryAfterWait(
                self.config.min_sleep, self.config.max_sleep, self.deadline
            ),
            stop=tenacity.stop_after_attempt(self.config.max_attempts),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retryer(self._do_request, method, path, **kwargs)

    def _do_request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute a single request (no retry)."""
        if self.deadline is not None:
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                raise DeliveryDeadlineError(
                    f"Dispatch deadline passed before {method} {path}"
                )
            kwargs["timeout"] = min(remaining, self.timeout)
        response = self._client.request(method, path, **kwargs)

        if response.status_code == 429:
            raise SlackRateLimitError(
                response.text,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if not response.is_success:
            raise SlackHTTPError(response.status_code, response.text)

        try:
            body = response.json()
        except ValueError as exc:
            raise SlackHTTPError(response.status_code, response.text) from exc
        if not isinstance(body, dict) or not body.get("ok"):
            raise SlackAPIError(body if isinstance(body, dict) else {"error": None})
        return body

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SlackClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class SlackTransport:
    """Delivers notifications as Slack messages.

    Assignees containing ``@`` are looked up by email; anything else is
    used as a channel identifier.
    """

    name = "slack"

    def __init__(self, client: SlackClient) -> None:
        self.client = client

    @classmethod
    def from_config(
        cls,
        config: SlackConfig,
        http: HttpConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> SlackTransport:
        config.validate_for_dispatch()
        return cls(SlackClient(config, http, transport=transport))

    def resolve(self, assignee: str) -> DeliveryTarget:
        if "@" not in assignee:
            return Channel(id=assignee)
        body = self.client.lookup_user_by_email(assignee)
        user = body.get("user") or {}
        profile = user.get("profile") or {}
        return User(id=user.get("id", ""), display_name=profile.get("first_name", ""))

    def send(self, target: DeliveryTarget, text: str) -> None:
        self.client.post_message(target.id, text)

    def set_deadline(self, deadline: float | None) -> None:
        self.client.set_deadline(deadline)

    def is_recipient_error(self, exc: BaseException) -> bool:
        return isinstance(exc, SlackAPIError) and exc.error_code in RECIPIENT_ERROR_CODES

    def close(self) -> None:
        self.client.close()
