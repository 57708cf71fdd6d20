"""Tickler: TODO comments that remind you when they are due.

A directive such as ``# TODO(on: package_release('httpx', '>= 1.0'), to:
'jane@example.com')`` is scanned from source, its condition checked, and a
reminder sent once the condition holds.
"""

import logging

from tickler._version import __version__

# Parsing
from tickler.parser import compile_directive, scan_source

# Domain models
from tickler.models.directive import Directive, Event, SourceLocation
from tickler.models.outcome import (
    Channel,
    EvaluationError,
    FallbackChannel,
    NotSatisfied,
    Satisfied,
    Unresolvable,
    User,
)

# Configuration
from tickler.models.config import TicklerConfig

# Evaluation
from tickler.events import EventContext, EventRegistry, Evaluator, default_registry

# Delivery
from tickler.dispatch import (
    DeliveryResult,
    DeliveryStatus,
    Dispatcher,
    Notification,
    OutputTransport,
    SlackTransport,
)

# Run orchestration
from tickler.runner import Runner, RunReport

# Exceptions
from tickler.exceptions import (
    ConfigError,
    DirectiveSyntaxError,
    EventError,
    TicklerError,
    TransportError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "compile_directive",
    "scan_source",
    "Directive",
    "Event",
    "SourceLocation",
    "Satisfied",
    "NotSatisfied",
    "Unresolvable",
    "EvaluationError",
    "User",
    "Channel",
    "FallbackChannel",
    "TicklerConfig",
    "EventContext",
    "EventRegistry",
    "Evaluator",
    "default_registry",
    "Dispatcher",
    "DeliveryResult",
    "DeliveryStatus",
    "Notification",
    "OutputTransport",
    "SlackTransport",
    "Runner",
    "RunReport",
    "TicklerError",
    "ConfigError",
    "DirectiveSyntaxError",
    "EventError",
    "TransportError",
]
