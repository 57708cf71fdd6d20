"""Condition checks: registry, context, built-ins, and the evaluator."""

from tickler.events.context import EventContext
from tickler.events.evaluator import Evaluator
from tickler.events.registry import EventRegistry, EventSpec, default_registry
from tickler.events.requirement import PythonVersion, Requirement, Version

__all__ = [
    "EventContext",
    "Evaluator",
    "EventRegistry",
    "EventSpec",
    "default_registry",
    "PythonVersion",
    "Requirement",
    "Version",
]
