"""Tests for Dispatcher fan-out, fallback routing and deadlines."""

from __future__ import annotations

import subprocess
import sys
import textwrap
import threading
import time

import pytest

from tests.fakes import RecordingTransport
from tickler.dispatch.dispatcher import DeliveryStatus, Dispatcher, Notification
from tickler.dispatch.message import Link
from tickler.events import EventContext, Evaluator
from tickler.exceptions import SlackAPIError, SlackHTTPError
from tickler.models.directive import SourceLocation
from tickler.models.outcome import FallbackChannel, Satisfied, User
from tickler.parser.compiler import compile_directive

TAG = "# TODO(on: date('2015-03-01'), to: 'john@example.com')"
LOCATION = SourceLocation(file="app.py", start_line=1, end_line=2)


def _notification(text: str = TAG, message: str = "It fired.") -> Notification:
    directive = compile_directive(text, body="Revisit the greeting.\n", location=LOCATION)
    return Notification(directive=directive, message=message)


class TestDeliver:
    """Single delivery units."""

    def test_satisfied_directive_delivered_once(self, now_2019) -> None:
        """A fired date directive produces exactly one delivery to its assignee."""
        directive = compile_directive(TAG, body="Revisit the greeting.\n", location=LOCATION)
        with EventContext(now=now_2019) as ctx:
            outcome = Evaluator(ctx).evaluate(directive)
        assert isinstance(outcome, Satisfied)

        transport = RecordingTransport()
        results = Dispatcher(transport, "#fallback").dispatch(
            [Notification(directive, outcome.message)]
        )

        assert transport.resolved == ["john@example.com"]
        assert len(transport.sent) == 1
        target, text = transport.sent[0]
        assert target == User(id="U-john@example.com", display_name="John")
        assert text.startswith("Hello John :wave:,")
        assert "2015-03-01" in text
        assert "Revisit the greeting." in text
        assert [r.status for r in results] == [DeliveryStatus.DELIVERED]

    def test_users_not_found_goes_to_fallback(self) -> None:
        transport = RecordingTransport(lookup_errors={"john@example.com": "users_not_found"})
        results = Dispatcher(transport, "#fallback").dispatch([_notification()])

        assert len(transport.sent) == 1
        target, text = transport.sent[0]
        assert target == FallbackChannel(id="#fallback", original_assignee="john@example.com")
        assert "`john@example.com` had an assigned TODO" in text
        assert results[0].status is DeliveryStatus.FALLBACK
        assert results[0].ok

    def test_archived_channel_on_send_goes_to_fallback(self) -> None:
        transport = RecordingTransport(
            send_errors={"#old": SlackAPIError({"ok": False, "error": "is_archived"})}
        )
        text = "# TODO(on: date('2015'), to: '#old')"
        results = Dispatcher(transport, "#fallback").dispatch([_notification(text)])
        assert transport.recipients == ["#fallback"]
        assert results[0].status is DeliveryStatus.FALLBACK

    def test_other_errors_abandon_the_unit(self) -> None:
        transport = RecordingTransport(lookup_errors={"john@example.com": "invalid_auth"})
        results = Dispatcher(transport, "#fallback").dispatch([_notification()])
        assert transport.sent == []
        assert results[0].status is DeliveryStatus.FAILED
        assert "invalid_auth" in results[0].error

    def test_no_fallback_channel(self) -> None:
        transport = RecordingTransport(lookup_errors={"john@example.com": "users_not_found"})
        results = Dispatcher(transport).dispatch([_notification()])
        assert transport.sent == []
        assert results[0].status is DeliveryStatus.FAILED

    def test_fallback_send_failure(self) -> None:
        transport = RecordingTransport(
            lookup_errors={"john@example.com": "users_not_found"},
            send_errors={"#fallback": SlackHTTPError(500, "boom")},
        )
        results = Dispatcher(transport, "#fallback").dispatch([_notification()])
        assert results[0].status is DeliveryStatus.FAILED
        assert isinstance(results[0].target, FallbackChannel)

    def test_link_resolver(self) -> None:
        transport = RecordingTransport()
        link = Link(url="https://example.com/app.py#L1-L2", display="app.py:1-2")
        Dispatcher(transport, link_resolver=lambda d: link).dispatch([_notification()])
        assert "<https://example.com/app.py#L1-L2|app.py:1-2>" in transport.sent[0][1]

    def test_broken_link_resolver_ignored(self) -> None:
        def resolver(directive):
            raise KeyError("GITHUB_SHA")

        transport = RecordingTransport()
        results = Dispatcher(transport, link_resolver=resolver).dispatch([_notification()])
        assert results[0].status is DeliveryStatus.DELIVERED
        assert "`app.py` file (line 1-2)" in transport.sent[0][1]


class TestFanOut:
    """Each (Directive, assignee) pair is an independent unit."""

    def test_two_assignees_two_attempts(self) -> None:
        transport = RecordingTransport(send_errors={"#b": SlackHTTPError(500, "boom")})
        text = "# TODO(on: date('2015'), to: 'a@example.com', to: '#b')"
        results = Dispatcher(transport, "#fallback", workers=2).dispatch([_notification(text)])

        assert sorted(transport.resolved) == ["#b", "a@example.com"]
        assert [(r.assignee, r.status) for r in results] == [
            ("a@example.com", DeliveryStatus.DELIVERED),
            ("#b", DeliveryStatus.FAILED),
        ]

    def test_many_notifications_keep_submission_order(self) -> None:
        transport = RecordingTransport()
        notifications = [
            _notification(f"# TODO(on: date('2015'), to: '#c{i}')") for i in range(20)
        ]
        results = Dispatcher(transport, workers=4).dispatch(notifications)
        assert [r.assignee for r in results] == [f"#c{i}" for i in range(20)]
        assert sorted(transport.recipients) == sorted(f"#c{i}" for i in range(20))

    def test_owner_receives_when_no_assignees(self) -> None:
        transport = RecordingTransport()
        text = "# TODO(on: issue_pin('o', 'r', 1), owner: 'boss@example.com')"
        Dispatcher(transport).dispatch([_notification(text)])
        assert transport.resolved == ["boss@example.com"]

    def test_nothing_to_dispatch(self) -> None:
        assert Dispatcher(RecordingTransport()).dispatch([]) == []


class TestDeadline:
    """Deliveries still pending at the deadline are reported, not awaited."""

    def test_pending_units_time_out(self) -> None:
        gate = threading.Event()

        class SlowTransport(RecordingTransport):
            def send(self, target, text):
                gate.wait(5)
                super().send(target, text)

        text = "# TODO(on: date('2015'), to: '#a', to: '#b')"
        try:
            results = Dispatcher(SlowTransport(), workers=1, deadline=0.05).dispatch(
                [_notification(text)]
            )
        finally:
            gate.set()

        assert [r.status for r in results] == [DeliveryStatus.TIMED_OUT] * 2
        assert not any(r.ok for r in results)
        assert "deadline" in results[0].error

    def test_no_sends_after_deadline(self) -> None:
        """A unit still queued at the deadline is never started."""
        gate = threading.Event()

        class SlowTransport(RecordingTransport):
            def send(self, target, text):
                gate.wait(5)
                super().send(target, text)

        transport = SlowTransport()
        text = "# TODO(on: date('2015'), to: '#a', to: '#b')"
        try:
            Dispatcher(transport, workers=1, deadline=0.05).dispatch([_notification(text)])
        finally:
            gate.set()
        for thread in threading.enumerate():
            if thread.name.startswith("tickler-dispatch"):
                thread.join(6)

        assert transport.resolved == ["#a"]

    def test_cancelled_unit_not_sent(self) -> None:
        transport = RecordingTransport()
        cancelled = threading.Event()
        cancelled.set()
        result = Dispatcher(transport, deadline=1.0).deliver(_notification(), "#a", cancelled)
        assert result.status is DeliveryStatus.TIMED_OUT
        assert transport.sent == []

    def test_transport_told_about_deadline(self) -> None:
        transport = RecordingTransport()
        before = time.monotonic()
        Dispatcher(transport, deadline=30).dispatch([_notification()])
        assert before + 30 <= transport.deadline <= time.monotonic() + 30

    def test_returns_at_deadline(self) -> None:
        class StuckTransport(RecordingTransport):
            def send(self, target, text):
                time.sleep(3)

        started = time.monotonic()
        results = Dispatcher(StuckTransport(), workers=1, deadline=0.2).dispatch(
            [_notification("# TODO(on: date('2015'), to: '#a')")]
        )
        assert time.monotonic() - started < 1.5
        assert results[0].status is DeliveryStatus.TIMED_OUT

    def test_stuck_delivery_does_not_hold_process_open(self) -> None:
        """The interpreter exits at the deadline, not when the send returns."""
        script = textwrap.dedent(
            """
            import time
            from tickler.dispatch import Dispatcher, Notification, OutputTransport
            from tickler.parser.compiler import compile_directive

            class Stuck(OutputTransport):
                def send(self, target, text):
                    time.sleep(10)

            directive = compile_directive("# TODO(on: date('2015'), to: '#a')")
            results = Dispatcher(Stuck(), workers=1, deadline=0.2).dispatch(
                [Notification(directive, "fired")]
            )
            print(results[0].status.value)
            """
        )
        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script], capture_output=True, text=True, timeout=30
        )
        assert completed.returncode == 0, completed.stderr
        assert completed.stdout.strip() == "timed_out"
        assert time.monotonic() - started < 8


@pytest.mark.parametrize("workers", [None, 1, 8])
def test_worker_count(workers) -> None:
    dispatcher = Dispatcher(RecordingTransport(), workers=workers)
    assert dispatcher.workers >= 1
