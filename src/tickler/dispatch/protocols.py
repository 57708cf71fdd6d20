"""Transport protocol for delivering notifications.

Any object with ``resolve()``, ``send()`` and ``close()`` matching these
signatures works. The built-in SlackTransport and OutputTransport implement
it. Transports are shared by every dispatcher worker and must tolerate
concurrent calls.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tickler.models.outcome import DeliveryTarget


@runtime_checkable
class Transport(Protocol):
    """Protocol for pluggable notification transports."""

    name: str

    def resolve(self, assignee: str) -> DeliveryTarget:
        """Turn an assignee string into a concrete delivery target."""
        ...

    def send(self, target: DeliveryTarget, text: str) -> None:
        """Deliver ``text`` to ``target``."""
        ...

    def set_deadline(self, deadline: float | None) -> None:
        """Bound later requests by ``deadline``, a ``time.monotonic()`` value."""
        ...

    def is_recipient_error(self, exc: BaseException) -> bool:
        """Whether ``exc`` means the recipient does not exist (use the fallback)."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
