"""Runner -- scan, evaluate, and dispatch for a set of files.

Scanning and evaluation happen on the calling thread, file by file; fired
Directives are queued and handed to the Dispatcher in one batch at the
end. Nothing here raises for bad input: problems are collected in the
RunReport, whose ``exit_code`` is what the CLI returns.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from tickler.dispatch.dispatcher import DeliveryResult, DeliveryStatus, Dispatcher, Notification
from tickler.events.evaluator import Evaluator
from tickler.models.directive import Directive
from tickler.models.outcome import EvaluationError, Satisfied, Unresolvable
from tickler.parser.scanner import scan_source

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES: tuple[str, ...] = (".py",)


def iter_source_files(
    paths: Iterable[str], suffixes: tuple[str, ...] = SOURCE_SUFFIXES
) -> Iterator[str]:
    """Yield files under ``paths`` in a stable order.

    Files given explicitly are yielded as-is; directories are walked for
    files ending in ``suffixes``, skipping hidden directories.
    """
    for path in paths:
        if os.path.isfile(path):
            yield path
            continue
        for root, dirs, files in os.walk(path):
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            for name in sorted(files):
                if name.endswith(suffixes):
                    yield os.path.join(root, name)


@dataclass
class RunReport:
    """Counters and messages accumulated over one run."""

    files_scanned: int = 0
    directives: int = 0
    parse_errors: int = 0
    evaluation_errors: int = 0
    unresolvable: int = 0
    dispatched: int = 0
    errors: list[str] = field(default_factory=list)
    deliveries: list[DeliveryResult] = field(default_factory=list)

    @property
    def failed_deliveries(self) -> list[DeliveryResult]:
        return [result for result in self.deliveries if not result.ok]

    @property
    def exit_code(self) -> int:
        if (
            self.parse_errors
            or self.evaluation_errors
            or self.unresolvable
            or self.failed_deliveries
        ):
            return 1
        return 0


def _validity_error(directive: Directive) -> str | None:
    if directive.parse_errors:
        return None
    if not directive.events:
        return f"{directive.location}: no `on:` event given"
    return f"{directive.location}: no `to:` assignee given"


class Runner:
    """Drives one run.

    Usage::

        with EventContext(config) as ctx:
            runner = Runner(Evaluator(ctx), Dispatcher(transport, "#todos"))
            report = runner.run_paths(["src"])
    """

    def __init__(
        self,
        evaluator: Evaluator,
        dispatcher: Dispatcher,
        *,
        tags: tuple[str, ...] | None = None,
        on_file: Callable[[str], None] | None = None,
    ) -> None:
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.tags = tags or evaluator.context.config.tags
        self.on_file = on_file
        self.report = RunReport()
        self._queue: list[Notification] = []

    def _error(self, message: str) -> None:
        logger.error(message)
        self.report.errors.append(message)

    def check_directive(self, directive: Directive) -> Notification | None:
        """Evaluate one Directive, queueing a Notification if it fires."""
        if not directive.is_valid:
            if not directive.parse_errors and not directive.events and not directive.assignees:
                # An ordinary ``TODO(name)`` comment, not a directive.
                return None
            self.report.parse_errors += 1
            for message in directive.parse_errors or (_validity_error(directive),):
                self._error(message)
            return None

        outcome = self.evaluator.evaluate(directive)
        if isinstance(outcome, EvaluationError):
            self.report.evaluation_errors += 1
            for message in outcome.errors or (outcome.message,):
                self.report.errors.append(message)
            return None
        if not isinstance(outcome, (Satisfied, Unresolvable)):
            return None

        if isinstance(outcome, Unresolvable):
            self.report.unresolvable += 1
            self.report.errors.append(f"{directive.location}: {outcome.message.strip()}")

        notification = Notification(
            directive=directive,
            message=outcome.message,
            context=self.evaluator.evaluate_context(directive, outcome.event),
        )
        self._queue.append(notification)
        return notification

    def check_source(self, source: str, filepath: str = "-") -> list[Notification]:
        """Scan and evaluate one source text. Returns the queued notifications."""
        notifications = []
        for directive in scan_source(source, filepath, self.tags):
            self.report.directives += 1
            notification = self.check_directive(directive)
            if notification is not None:
                notifications.append(notification)
        return notifications

    def check_file(self, filepath: str) -> list[Notification]:
        try:
            try:
                with open(filepath, encoding="utf-8") as handle:
                    source = handle.read()
            except (OSError, UnicodeDecodeError) as exc:
                self.report.parse_errors += 1
                self._error(f"Unable to read {filepath}: {exc}")
                return []
            return self.check_source(source, filepath)
        finally:
            self.report.files_scanned += 1
            if self.on_file is not None:
                self.on_file(filepath)

    def dispatch(self) -> list[DeliveryResult]:
        """Deliver every queued notification and record the results."""
        queue, self._queue = self._queue, []
        results = self.dispatcher.dispatch(queue)
        self.report.dispatched += len(queue)
        self.report.deliveries.extend(results)
        for result in results:
            if result.status in (DeliveryStatus.FAILED, DeliveryStatus.TIMED_OUT):
                self.report.errors.append(
                    f"Unable to deliver {result.directive.location} to "
                    f"{result.assignee}: {result.error}"
                )
        return results

    def run_paths(self, paths: Iterable[str]) -> RunReport:
        """Check every source file under ``paths``, then dispatch."""
        for filepath in iter_source_files(paths):
            self.check_file(filepath)
        self.dispatch()
        return self.report
