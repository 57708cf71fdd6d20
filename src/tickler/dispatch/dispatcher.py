"""Dispatcher -- fans fired Directives out to their recipients.

Each (Directive, recipient) pair is an independent delivery unit, pulled
from a shared queue by a fixed set of worker threads. A recipient that no
longer exists is replaced by the fallback channel and the message is sent
once more; any other failure is logged and abandons that unit only.

Workers are daemon threads: once the deadline passes, dispatch() returns
and a stuck delivery cannot keep the process alive.
"""

from __future__ import annotations

import enum
import logging
import os
import queue
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Optional

from tickler.dispatch.message import Link, format_message
from tickler.dispatch.protocols import Transport
from tickler.models.directive import Directive
from tickler.models.outcome import DeliveryTarget, FallbackChannel

logger = logging.getLogger(__name__)

LinkResolver = Callable[[Directive], Optional[Link]]


@dataclass(frozen=True)
class Notification:
    """A fired Directive with the message explaining why it fired."""

    directive: Directive
    message: str
    context: str | None = None


class DeliveryStatus(str, enum.Enum):
    DELIVERED = "delivered"
    FALLBACK = "fallback"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery unit."""

    directive: Directive
    assignee: str
    status: DeliveryStatus
    target: DeliveryTarget | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (DeliveryStatus.DELIVERED, DeliveryStatus.FALLBACK)


class _Batch:
    """Units and results of one dispatch() call, shared by its workers."""

    def __init__(self, units: list[tuple[Notification, str]]) -> None:
        self.units = units
        self.pending: queue.Queue[int] = queue.Queue()
        for index in range(len(units)):
            self.pending.put(index)
        self.results: list[DeliveryResult | None] = [None] * len(units)
        self.expired = threading.Event()
        self.finished = threading.Event()
        self._lock = threading.Lock()
        self._outstanding = len(units)

    def next_unit(self) -> int | None:
        if self.expired.is_set():
            return None
        try:
            return self.pending.get_nowait()
        except queue.Empty:
            return None

    def record(self, index: int, result: DeliveryResult) -> None:
        # Results arriving after expire() are dropped; the unit stays timed out.
        with self._lock:
            if self.expired.is_set():
                return
            self.results[index] = result
            self._outstanding -= 1
            if self._outstanding == 0:
                self.finished.set()

    def expire(self) -> list[DeliveryResult | None]:
        with self._lock:
            self.expired.set()
            return list(self.results)


class Dispatcher:
    """Delivers notifications through a Transport on a worker pool.

    Usage::

        dispatcher = Dispatcher(transport, fallback_channel="#todos", workers=4)
        results = dispatcher.dispatch([Notification(directive, message)])
    """

    def __init__(
        self,
        transport: Transport,
        fallback_channel: str | None = None,
        *,
        workers: int | None = None,
        deadline: float | None = None,
        link_resolver: LinkResolver | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            transport: Resolves recipients and sends messages.
            fallback_channel: Channel used when a recipient does not exist.
                Without one, such units fail.
            workers: Pool size. Defaults to the number of CPUs.
            deadline: Seconds allowed for all deliveries of one dispatch()
                call. The transport is told when it passes; units not
                finished by then are reported as timed out and never sent
                afterwards. None waits for everything.
            link_resolver: Returns a deep link for a Directive, or None.
        """
        self.transport = transport
        self.fallback_channel = fallback_channel
        self.workers = max(1, workers or os.cpu_count() or 1)
        self.deadline = deadline
        self.link_resolver = link_resolver

    def _link(self, directive: Directive) -> Link | None:
        if self.link_resolver is None:
            return None
        try:
            return self.link_resolver(directive)
        except Exception as exc:
            logger.warning("Unable to build a link for %s: %s", directive.location, exc)
            return None

    def _timed_out(self, directive: Directive, assignee: str) -> DeliveryResult:
        return DeliveryResult(
            directive,
            assignee,
            DeliveryStatus.TIMED_OUT,
            error=f"deadline of {self.deadline}s exceeded",
        )

    # ------------------------------------------------------------------
    # Single unit
    # ------------------------------------------------------------------

    def deliver(
        self,
        notification: Notification,
        assignee: str,
        cancelled: threading.Event | None = None,
    ) -> DeliveryResult:
        """Deliver ``notification`` to one recipient. Never raises.

        Nothing is sent once ``cancelled`` is set.
        """
        directive = notification.directive
        link = self._link(directive)
        try:
            target = self.transport.resolve(assignee)
            text = format_message(
                directive,
                notification.message,
                target,
                context=notification.context,
                link=link,
            )
            if cancelled is not None and cancelled.is_set():
                return self._timed_out(directive, assignee)
            self.transport.send(target, text)
        except Exception as exc:
            if self.fallback_channel and self.transport.is_recipient_error(exc):
                logger.info(
                    "Recipient %s not found (%s), using fallback channel %s",
                    assignee,
                    exc,
                    self.fallback_channel,
                )
                return self._deliver_fallback(notification, assignee, link, cancelled)
            logger.error(
                "Error dispatching message to %s for %s: %s",
                assignee,
                directive.location,
                exc,
            )
            return DeliveryResult(
                directive, assignee, DeliveryStatus.FAILED, error=str(exc)
            )

        logger.debug("Delivered %s to %s", directive.location, assignee)
        return DeliveryResult(directive, assignee, DeliveryStatus.DELIVERED, target=target)

    def _deliver_fallback(
        self,
        notification: Notification,
        assignee: str,
        link: Link | None,
        cancelled: threading.Event | None,
    ) -> DeliveryResult:
        directive = notification.directive
        target = FallbackChannel(id=self.fallback_channel or "", original_assignee=assignee)
        text = format_message(
            directive,
            notification.message,
            target,
            context=notification.context,
            link=link,
        )
        if cancelled is not None and cancelled.is_set():
            return self._timed_out(directive, assignee)
        try:
            self.transport.send(target, text)
        except Exception as exc:
            logger.error(
                "Error dispatching message to fallback channel %s for %s: %s",
                target.id,
                directive.location,
                exc,
            )
            return DeliveryResult(
                directive, assignee, DeliveryStatus.FAILED, target=target, error=str(exc)
            )
        return DeliveryResult(directive, assignee, DeliveryStatus.FALLBACK, target=target)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def _work(self, batch: _Batch) -> None:
        while True:
            index = batch.next_unit()
            if index is None:
                return
            notification, assignee = batch.units[index]
            try:
                result = self.deliver(notification, assignee, batch.expired)
            except Exception as exc:
                logger.exception("Delivery to %s crashed", assignee)
                result = DeliveryResult(
                    notification.directive, assignee, DeliveryStatus.FAILED, error=str(exc)
                )
            batch.record(index, result)

    def dispatch(self, notifications: Iterable[Notification]) -> list[DeliveryResult]:
        """Deliver every notification to each of its recipients.

        Returns one DeliveryResult per unit, in submission order.
        """
        units = [
            (notification, assignee)
            for notification in notifications
            for assignee in notification.directive.recipients
        ]
        if not units:
            return []

        if self.deadline is not None:
            self.transport.set_deadline(time.monotonic() + self.deadline)

        batch = _Batch(units)
        threads = [
            threading.Thread(
                target=self._work,
                args=(batch,),
                name=f"tickler-dispatch-{number}",
                daemon=True,
            )
            for number in range(min(self.workers, len(units)))
        ]
        for thread in threads:
            thread.start()

        if self.deadline is None:
            for thread in threads:
                thread.join()
        else:
            batch.finished.wait(self.deadline)
        collected = batch.expire()

        abandoned = sum(1 for result in collected if result is None)
        if abandoned:
            logger.warning(
                "Dispatch deadline of %ss exceeded, %d deliveries abandoned",
                self.deadline,
                abandoned,
            )

        return [
            result if result is not None else self._timed_out(notification.directive, assignee)
            for result, (notification, assignee) in zip(collected, units)
        ]
