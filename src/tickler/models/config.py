"""Configuration models for Tickler.

TicklerConfig is built once at startup and handed to the evaluation context
and the transports. Nothing downstream reads the process environment:
``TicklerConfig.from_env()`` snapshots it up front.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from tickler.exceptions import ConfigError

GITHUB_TOKEN_ENV = "TICKLER_GITHUB_TOKEN"
SLACK_TOKEN_ENV = "TICKLER_SLACK_TOKEN"

DEFAULT_TAGS: tuple[str, ...] = ("TODO", "FIXME", "OPTIMIZE")


def _env_key_part(value: str) -> str:
    return re.sub(r"[^A-Z0-9]", "_", value.upper())


class HttpConfig(BaseModel):
    """Timeouts and connection retries shared by every HTTP client."""

    timeout: float = 30.0
    connect_timeout: float = 15.0
    retries: int = 2


class GitHubConfig(BaseModel):
    """Issue tracker endpoint and credentials."""

    base_url: str = "https://api.github.com"
    web_url: str = "https://github.com"
    accept: str = "application/vnd.github.v3+json"
    tokens: dict[str, str] = Field(default_factory=dict)

    def token_for(self, organization: str, repo: str) -> Optional[str]:
        """Resolve the token for a repository.

        Looks in order for ``TICKLER_GITHUB_TOKEN__<ORG>__<REPO>``,
        ``TICKLER_GITHUB_TOKEN__<ORG>`` and ``TICKLER_GITHUB_TOKEN``.
        """
        org_key = _env_key_part(organization)
        repo_key = _env_key_part(repo)
        for key in (
            f"{GITHUB_TOKEN_ENV}__{org_key}__{repo_key}",
            f"{GITHUB_TOKEN_ENV}__{org_key}",
            GITHUB_TOKEN_ENV,
        ):
            token = self.tokens.get(key)
            if token:
                return token
        return None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GitHubConfig:
        environ = os.environ if environ is None else environ
        tokens = {
            key: value
            for key, value in environ.items()
            if key == GITHUB_TOKEN_ENV or key.startswith(f"{GITHUB_TOKEN_ENV}__")
        }
        return cls(tokens=tokens)


class PackageRegistryConfig(BaseModel):
    """Package registries queried by the release checks."""

    base_url: str = "https://rubygems.org"
    pypi_url: str = "https://pypi.org"


class SlackConfig(BaseModel):
    """Chat transport settings."""

    token: str = ""
    fallback_channel: Optional[str] = None
    base_url: str = "https://slack.com"
    max_attempts: int = 5
    min_sleep: float = 30.0
    max_sleep: float = 600.0

    def validate_for_dispatch(self) -> None:
        """Raise ConfigError unless this config can deliver messages."""
        if not self.token:
            raise ConfigError(
                f"Missing Slack token. Pass --slack-token or set {SLACK_TOKEN_ENV}."
            )
        if not self.fallback_channel:
            raise ConfigError("Missing fallback channel. Pass --fallback-channel.")


class DispatchConfig(BaseModel):
    """Worker pool sizing and run deadline for deliveries."""

    workers: int = Field(default_factory=lambda: os.cpu_count() or 1)
    deadline: Optional[float] = None  # seconds, None = unbounded

    @field_validator("workers")
    @classmethod
    def _positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("workers must be at least 1")
        return value


class TicklerConfig(BaseModel):
    """Top-level configuration for a run."""

    tags: tuple[str, ...] = DEFAULT_TAGS
    http: HttpConfig = Field(default_factory=HttpConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    registry: PackageRegistryConfig = Field(default_factory=PackageRegistryConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: object
    ) -> TicklerConfig:
        """Build a config from the environment plus explicit overrides."""
        environ = os.environ if environ is None else environ
        data: dict = {
            "github": GitHubConfig.from_env(environ),
            "slack": SlackConfig(token=environ.get(SLACK_TOKEN_ENV, "")),
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)
