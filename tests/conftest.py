"""Shared test fixtures for Tickler.

Provides fixed clocks, stubbed HTTP transports, and a recording chat
transport so that no test touches the network.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timezone

import httpx
import pytest

from tests.fakes import RecordingTransport, Routes, make_mock_transport
from tickler.events import EventContext
from tickler.models.config import TicklerConfig


@pytest.fixture
def now_2019() -> datetime:
    return datetime(2019, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now_2014() -> datetime:
    return datetime(2014, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_context() -> Iterator[Callable[..., EventContext]]:
    """Factory for EventContexts backed by a stubbed HTTP transport.

    Contexts are closed after the test.
    """
    contexts: list[EventContext] = []

    def factory(
        routes: Routes | None = None,
        *,
        calls: list[httpx.Request] | None = None,
        config: TicklerConfig | None = None,
        **kwargs: object,
    ) -> EventContext:
        ctx = EventContext(
            config or TicklerConfig(),
            transport=make_mock_transport(routes or {}, calls),
            **kwargs,  # type: ignore[arg-type]
        )
        contexts.append(ctx)
        return ctx

    yield factory
    for ctx in contexts:
        ctx.close()
