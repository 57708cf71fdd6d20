"""httpx client construction shared by the checks and the chat transport."""

from __future__ import annotations

import httpx

from tickler._version import __version__
from tickler.models.config import HttpConfig

USER_AGENT = f"tickler/{__version__}"


def build_client(
    base_url: str,
    config: HttpConfig | None = None,
    *,
    headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Build a TLS client bound to ``base_url``.

    Connection failures are retried ``config.retries`` times by the
    transport. Pass ``transport`` (e.g. ``httpx.MockTransport``) to stub
    the network.
    """
    config = config or HttpConfig()
    return httpx.Client(
        base_url=base_url,
        timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
        transport=transport or httpx.HTTPTransport(retries=config.retries),
        headers={"User-Agent": USER_AGENT, **(headers or {})},
    )
