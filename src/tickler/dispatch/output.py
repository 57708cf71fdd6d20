"""Transport that prints notifications instead of sending them.

Useful for dry runs and CI logs. It never fails and never retries.
"""

from __future__ import annotations

import threading

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from tickler.models.outcome import Channel, DeliveryTarget, FallbackChannel, User


class OutputTransport:
    """Writes each notification to a rich Console."""

    name = "output"

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._lock = threading.Lock()

    def resolve(self, assignee: str) -> DeliveryTarget:
        if "@" in assignee:
            return User(id=assignee)
        return Channel(id=assignee)

    def send(self, target: DeliveryTarget, text: str) -> None:
        recipient = target.id
        if isinstance(target, FallbackChannel):
            recipient = f"{target.id} (for {target.original_assignee})"
        with self._lock:
            self.console.print(Rule(escape(f"To: {recipient}"), style="dim"))
            self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def set_deadline(self, deadline: float | None) -> None:
        pass

    def is_recipient_error(self, exc: BaseException) -> bool:
        return False

    def close(self) -> None:
        pass
