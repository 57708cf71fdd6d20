"""Tests for SlackClient, SlackTransport and OutputTransport."""

from __future__ import annotations

import io
import json
import sys
import time

import httpx
import pytest
import tenacity
from rich.console import Console

from tickler.dispatch.output import OutputTransport
from tickler.dispatch.slack import SlackClient, SlackTransport, _RetryAfterWait
from tickler.exceptions import (
    ConfigError,
    DeliveryDeadlineError,
    SlackAPIError,
    SlackHTTPError,
    SlackRateLimitError,
)
from tickler.models.config import SlackConfig
from tickler.models.outcome import Channel, FallbackChannel, User

# No real sleeping between rate-limit retries.
FAST = SlackConfig(token="xoxb-test", fallback_channel="#fallback", min_sleep=0, max_sleep=0, max_attempts=3)


def _client(handler, config: SlackConfig = FAST) -> SlackClient:
    return SlackClient(config, transport=httpx.MockTransport(handler))


class TestSlackClient:
    """Tests for SlackClient requests and error mapping."""

    def test_lookup_user_by_email(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "user": {"id": "U1"}})

        body = _client(handler).lookup_user_by_email("john@example.com")
        assert body["user"]["id"] == "U1"
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/api/users.lookupByEmail"
        assert request.url.params["email"] == "john@example.com"
        assert request.headers["Authorization"] == "Bearer xoxb-test"

    def test_post_message(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        _client(handler).post_message("U1", "Hello")
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/chat.postMessage"
        assert json.loads(request.content) == {"channel": "U1", "text": "Hello"}
        assert request.headers["Content-Type"] == "application/json; charset=utf8"

    def test_logical_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": False, "error": "users_not_found"})

        with pytest.raises(SlackAPIError) as exc_info:
            _client(handler).lookup_user_by_email("ghost@example.com")
        assert exc_info.value.error_code == "users_not_found"

    def test_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(SlackHTTPError) as exc_info:
            _client(handler).post_message("U1", "Hello")
        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Request to Slack failed boom, code 500"
        assert not hasattr(exc_info.value, "attempts")
        assert not isinstance(exc_info.value, SlackRateLimitError)

    def test_rate_limit_retried(self) -> None:
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "1"}),
                httpx.Response(200, json={"ok": True}),
            ]
        )
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return next(responses)

        assert _client(handler).post_message("U1", "Hello") == {"ok": True}
        assert len(calls) == 2

    def test_rate_limit_exhausted(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, headers={"Retry-After": "2"})

        with pytest.raises(SlackRateLimitError) as exc_info:
            _client(handler).post_message("U1", "Hello")
        assert exc_info.value.retry_after == 2.0
        assert len(calls) == FAST.max_attempts

    def test_no_request_after_deadline(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"ok": True})

        client = _client(handler)
        client.set_deadline(time.monotonic() - 1)
        with pytest.raises(DeliveryDeadlineError):
            client.post_message("U1", "Hello")
        assert calls == []

    def test_rate_limit_retries_stop_at_deadline(self) -> None:
        """Retry-After waits are cut short by the deadline."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "60"})

        config = FAST.model_copy(update={"min_sleep": 60, "max_sleep": 600, "max_attempts": 5})
        client = _client(handler, config)
        client.set_deadline(time.monotonic() + 0.2)
        started = time.monotonic()
        with pytest.raises((DeliveryDeadlineError, SlackRateLimitError)):
            client.post_message("U1", "Hello")
        assert time.monotonic() - started < 5

    def test_request_timeout_bounded_by_deadline(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        client = _client(handler)
        client.set_deadline(time.monotonic() + 2)
        client.post_message("U1", "Hello")
        assert seen[0].extensions["timeout"]["read"] <= 2


class TestRetryAfterWait:
    """The Retry-After delay is clamped to the configured bounds."""

    @staticmethod
    def _state(exc: BaseException) -> tenacity.RetryCallState:
        state = tenacity.RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
        state.set_exception((type(exc), exc, None))
        return state

    @pytest.mark.parametrize(
        ("retry_after", "expected"),
        [(5.0, 30.0), (120.0, 120.0), (10_000.0, 600.0), (None, 30.0)],
    )
    def test_clamped(self, retry_after, expected) -> None:
        wait = _RetryAfterWait(30.0, 600.0)
        assert wait(self._state(SlackRateLimitError(retry_after=retry_after))) == expected


class TestSlackTransport:
    """Tests for recipient resolution."""

    def test_email_is_looked_up(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"ok": True, "user": {"id": "U1", "profile": {"first_name": "John"}}},
            )

        transport = SlackTransport(_client(handler))
        assert transport.resolve("john@example.com") == User(id="U1", display_name="John")

    def test_channel_used_directly(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        transport = SlackTransport(_client(handler))
        assert transport.resolve("#general") == Channel(id="#general")

    def test_recipient_errors(self) -> None:
        transport = SlackTransport(_client(lambda r: httpx.Response(200, json={"ok": True})))
        for code in ("users_not_found", "channel_not_found", "is_archived"):
            assert transport.is_recipient_error(SlackAPIError({"ok": False, "error": code}))
        assert not transport.is_recipient_error(SlackAPIError({"ok": False, "error": "invalid_auth"}))
        assert not transport.is_recipient_error(SlackHTTPError(500, "boom"))

    def test_deadline_passed_to_client(self) -> None:
        transport = SlackTransport(_client(lambda r: httpx.Response(200, json={"ok": True})))
        transport.set_deadline(123.0)
        assert transport.client.deadline == 123.0

    def test_from_config_requires_token(self) -> None:
        with pytest.raises(ConfigError, match="Missing Slack token"):
            SlackTransport.from_config(SlackConfig(fallback_channel="#fallback"))

    def test_from_config_requires_fallback(self) -> None:
        with pytest.raises(ConfigError, match="Missing fallback channel"):
            SlackTransport.from_config(SlackConfig(token="xoxb"))


class TestOutputTransport:
    """Tests for the printing transport."""

    def test_prints_message(self) -> None:
        buffer = io.StringIO()
        transport = OutputTransport(Console(file=buffer, width=120))
        transport.send(transport.resolve("jane@example.com"), "Hello [bold]there[/bold]")
        output = buffer.getvalue()
        assert "To: jane@example.com" in output
        assert "Hello [bold]there[/bold]" in output

    def test_fallback_recipient(self) -> None:
        buffer = io.StringIO()
        transport = OutputTransport(Console(file=buffer, width=120))
        transport.send(FallbackChannel(id="#fallback", original_assignee="x@y.co"), "Hi")
        assert "#fallback (for x@y.co)" in buffer.getvalue()

    def test_never_fails(self) -> None:
        transport = OutputTransport(Console(file=sys.stderr))
        assert transport.resolve("#team") == Channel(id="#team")
        assert not transport.is_recipient_error(RuntimeError())
