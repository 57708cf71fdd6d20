"""Notification delivery: message formatting, transports, and the dispatcher."""

from tickler.dispatch.dispatcher import (
    DeliveryResult,
    DeliveryStatus,
    Dispatcher,
    Notification,
)
from tickler.dispatch.links import CILinkResolver
from tickler.dispatch.message import Link, format_message
from tickler.dispatch.output import OutputTransport
from tickler.dispatch.protocols import Transport
from tickler.dispatch.slack import SlackClient, SlackTransport

__all__ = [
    "Dispatcher",
    "DeliveryResult",
    "DeliveryStatus",
    "Notification",
    "Transport",
    "SlackClient",
    "SlackTransport",
    "OutputTransport",
    "Link",
    "CILinkResolver",
    "format_message",
]
