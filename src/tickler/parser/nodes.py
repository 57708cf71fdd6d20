"""Typed AST produced by the directive parser."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class StringNode:
    value: str
    source: str


@dataclass(frozen=True)
class IntegerNode:
    value: int
    source: str


@dataclass(frozen=True)
class NameNode:
    """A bare identifier, e.g. ``on: tomorrow``."""

    name: str
    source: str


@dataclass(frozen=True)
class RawNode:
    """Any expression outside the grammar, kept as source text."""

    source: str


@dataclass(frozen=True)
class KeywordNode:
    key: str
    value: Node
    source: str


@dataclass(frozen=True)
class CallNode:
    name: str
    arguments: tuple[Node, ...]
    keywords: tuple[KeywordNode, ...]
    source: str

    @property
    def has_literal_arguments(self) -> bool:
        """True when every argument is a string or integer literal."""
        return not self.keywords and all(
            isinstance(arg, (StringNode, IntegerNode)) for arg in self.arguments
        )

    @property
    def literal_arguments(self) -> tuple[str | int, ...]:
        return tuple(arg.value for arg in self.arguments)  # type: ignore[union-attr]


Node = Union[StringNode, IntegerNode, NameNode, RawNode, CallNode]
