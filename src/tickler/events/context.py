"""EventContext -- everything a check needs, passed in explicitly.

Holds the clock, credentials, installed package versions, the runtime
version, and lazily built HTTP clients. Checks receive it as their first
argument instead of reading globals or the environment.
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Mapping
from datetime import datetime
from importlib import metadata

import httpx

from tickler.http import build_client
from tickler.models.config import TicklerConfig

logger = logging.getLogger(__name__)


class EventContext:
    """Shared, read-mostly state for one evaluation run.

    Usage::

        with EventContext(TicklerConfig.from_env()) as ctx:
            evaluator = Evaluator(ctx)
            outcome = evaluator.evaluate(directive)
    """

    def __init__(
        self,
        config: TicklerConfig | None = None,
        *,
        now: datetime | None = None,
        installed_versions: Mapping[str, str] | None = None,
        runtime_version: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            config: Run configuration. Defaults to ``TicklerConfig()``.
            now: Fixed "current time"; captured on first use when omitted.
            installed_versions: Package name -> version overrides for
                ``package_bump``. Unlisted packages are looked up in the
                current environment's installed distributions.
            runtime_version: Version reported by ``python_version``.
            transport: httpx transport shared by every client (tests pass
                ``httpx.MockTransport``).
        """
        self.config = config or TicklerConfig()
        self._now = now
        self._installed_versions = dict(installed_versions or {})
        self._runtime_version = runtime_version
        self._transport = transport
        self._clients: dict[str, httpx.Client] = {}

    @property
    def now(self) -> datetime:
        if self._now is None:
            self._now = datetime.now().astimezone()
        return self._now

    @property
    def runtime_version(self) -> str:
        if self._runtime_version is None:
            self._runtime_version = platform.python_version().rstrip("+")
        return self._runtime_version

    def installed_version(self, package: str) -> str | None:
        """Locally resolved version of ``package``, or None if absent."""
        if package in self._installed_versions:
            return self._installed_versions[package]
        try:
            return metadata.version(package)
        except metadata.PackageNotFoundError:
            return None

    # ------------------------------------------------------------------
    # HTTP clients
    # ------------------------------------------------------------------

    def _client(self, base_url: str) -> httpx.Client:
        client = self._clients.get(base_url)
        if client is None:
            client = build_client(
                base_url, self.config.http, transport=self._transport
            )
            self._clients[base_url] = client
        return client

    @property
    def registry_client(self) -> httpx.Client:
        return self._client(self.config.registry.base_url)

    @property
    def pypi_client(self) -> httpx.Client:
        return self._client(self.config.registry.pypi_url)

    @property
    def github_client(self) -> httpx.Client:
        return self._client(self.config.github.base_url)

    def github_headers(self, organization: str, repo: str) -> dict[str, str]:
        headers = {"Accept": self.config.github.accept}
        token = self.config.github.token_for(organization, repo)
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    def github_get(
        self, organization: str, repo: str, kind: str, number: str | int
    ) -> httpx.Response:
        """GET ``/repos/{org}/{repo}/{kind}/{number}`` from the issue tracker."""
        path = f"/repos/{organization}/{repo}/{kind}/{number}"
        logger.debug("GET %s%s", self.config.github.base_url, path)
        return self.github_client.get(
            path, headers=self.github_headers(organization, repo)
        )

    def close(self) -> None:
        """Close every HTTP client opened by this context."""
        for client in self._clients.values():
            client.close()
        self._clients.clear()

    def __enter__(self) -> EventContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
