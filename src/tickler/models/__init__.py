"""Domain models: directives, events, outcomes, delivery targets, config."""

from tickler.models.config import (
    DispatchConfig,
    GitHubConfig,
    HttpConfig,
    PackageRegistryConfig,
    SlackConfig,
    TicklerConfig,
)
from tickler.models.directive import Directive, Event, SourceLocation
from tickler.models.outcome import (
    Channel,
    DeliveryTarget,
    EvaluationError,
    EvaluationOutcome,
    FallbackChannel,
    NotSatisfied,
    Satisfied,
    Unresolvable,
    User,
)

__all__ = [
    "Directive",
    "Event",
    "SourceLocation",
    "Satisfied",
    "NotSatisfied",
    "Unresolvable",
    "EvaluationError",
    "EvaluationOutcome",
    "User",
    "Channel",
    "FallbackChannel",
    "DeliveryTarget",
    "TicklerConfig",
    "GitHubConfig",
    "HttpConfig",
    "PackageRegistryConfig",
    "SlackConfig",
    "DispatchConfig",
]
