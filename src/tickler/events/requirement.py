"""Version numbers and version requirements.

Supports the operators ``=``, ``!=``, ``>``, ``>=``, ``<``, ``<=`` and the
pessimistic ``~>``: ``~> 2.5`` means ``>= 2.5, < 3`` and ``~> 2.5.1`` means
``>= 2.5.1, < 2.6``. A requirement with no operator means ``=``.

Two version schemes are supported. ``Version`` follows RubyGems ordering and
is used for the gem registry. ``PythonVersion`` follows PEP 440 (through
``packaging``) and is used for PyPI, installed distributions and the
interpreter: post releases sort after their release and local labels
(``+local``) are ignored.

Versions compare segment by segment; trailing zeros are insignificant
(``1.2 == 1.2.0``) and alphabetic segments mark a prerelease that sorts
before the release (``1.0.rc1 < 1.0``).
"""

from __future__ import annotations

import functools
import operator
import re
from collections.abc import Callable, Iterable
from typing import Union

from packaging.version import InvalidVersion
from packaging.version import Version as _PEP440Version

from tickler.exceptions import EventArgumentError

Segment = int | str

_VERSION_PATTERN = re.compile(r"^[0-9]+(?:[.-]?[0-9a-zA-Z]+)*$")
_SEGMENT_PATTERN = re.compile(r"[0-9]+|[a-zA-Z]+")
_REQUIREMENT_PATTERN = re.compile(r"^\s*(=|!=|>=|<=|>|<|~>)?\s*(\S+)\s*$")


def _trim_zeros(segments: list[Segment]) -> list[Segment]:
    while segments and segments[-1] == 0:
        segments.pop()
    return segments


@functools.total_ordering
class Version:
    """A comparable version number."""

    def __init__(self, text: str | int) -> None:
        text = str(text).strip()
        if not _VERSION_PATTERN.match(text):
            raise EventArgumentError(f"Malformed version number string {text!r}")
        self.text = text
        self.segments: tuple[Segment, ...] = tuple(
            int(part) if part.isdigit() else part.lower()
            for part in _SEGMENT_PATTERN.findall(text)
        )

    @property
    def is_prerelease(self) -> bool:
        return any(isinstance(s, str) for s in self.segments)

    @property
    def release_segments(self) -> list[int]:
        numeric: list[int] = []
        for segment in self.segments:
            if isinstance(segment, str):
                break
            numeric.append(segment)
        return numeric

    def canonical_segments(self) -> tuple[Segment, ...]:
        release = self.release_segments
        rest = list(self.segments[len(release):])
        return tuple(_trim_zeros(list(release)) + _trim_zeros(rest))

    def release(self) -> Version:
        """This version without its prerelease part."""
        if not self.is_prerelease:
            return self
        return Version(".".join(str(s) for s in self.release_segments) or "0")

    def bump(self) -> Version:
        """Upper bound of a pessimistic requirement: ``2.5.1`` -> ``2.6``."""
        segments = self.release_segments
        if len(segments) > 1:
            segments.pop()
        segments[-1] += 1
        return Version(".".join(str(s) for s in segments))

    def _compare(self, other: Version) -> int:
        lhs, rhs = self.canonical_segments(), other.canonical_segments()
        for index in range(max(len(lhs), len(rhs))):
            left = lhs[index] if index < len(lhs) else 0
            right = rhs[index] if index < len(rhs) else 0
            if left == right:
                continue
            if isinstance(left, str) and isinstance(right, int):
                return -1
            if isinstance(left, int) and isinstance(right, str):
                return 1
            return -1 if left < right else 1  # type: ignore[operator]
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: Version) -> bool:
        return self._compare(other) < 0

    def __hash__(self) -> int:
        return hash(self.canonical_segments())

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Version({self.text!r})"


@functools.total_ordering
class PythonVersion:
    """A PEP 440 version. Comparisons use the public version only."""

    def __init__(self, text: str | int) -> None:
        text = str(text).strip()
        try:
            parsed = _PEP440Version(text)
        except InvalidVersion as exc:
            raise EventArgumentError(f"Malformed version number string {text!r}") from exc
        self.text = text
        self._public = _PEP440Version(parsed.public)

    @property
    def is_prerelease(self) -> bool:
        return self._public.is_prerelease

    @property
    def release_segments(self) -> list[int]:
        return list(self._public.release)

    def release(self) -> PythonVersion:
        """This version without pre, post or dev parts."""
        return PythonVersion(self._public.base_version)

    def bump(self) -> PythonVersion:
        segments = self.release_segments
        if len(segments) > 1:
            segments.pop()
        segments[-1] += 1
        return PythonVersion(".".join(str(s) for s in segments))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PythonVersion):
            return NotImplemented
        return self._public == other._public

    def __lt__(self, other: PythonVersion) -> bool:
        return self._public < other._public

    def __hash__(self) -> int:
        return hash(self._public)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"PythonVersion({self.text!r})"


AnyVersion = Union[Version, PythonVersion]
VersionScheme = Callable[[str], AnyVersion]


def _pessimistic(version: AnyVersion, bound: AnyVersion) -> bool:
    return version >= bound and version.release() < bound.bump()


_OPERATORS: dict[str, Callable[[AnyVersion, AnyVersion], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "~>": _pessimistic,
}


class Requirement:
    """A conjunction of version constraints within one version scheme."""

    def __init__(
        self,
        constraints: Iterable[tuple[str, AnyVersion]],
        scheme: VersionScheme = Version,
    ) -> None:
        self.scheme = scheme
        self.constraints = tuple(constraints) or ((">=", scheme("0")),)

    @classmethod
    def parse(cls, *specs: str | int, scheme: VersionScheme = Version) -> Requirement:
        """Build a requirement from strings like ``"> 5.1"`` or ``"~> 1.2"``.

        ``scheme`` is ``Version`` or ``PythonVersion``; bounds and the
        versions later checked against them are parsed with it.

        Raises:
            EventArgumentError: If a constraint is malformed.
        """
        constraints = []
        for spec in specs:
            for part in str(spec).split(","):
                if not part.strip():
                    continue
                match = _REQUIREMENT_PATTERN.match(part)
                if match is None:
                    raise EventArgumentError(f"Illformed requirement {part.strip()!r}")
                op, number = match.groups()
                constraints.append((op or "=", scheme(number)))
        return cls(constraints, scheme)

    def version(self, text: str | int) -> AnyVersion:
        """Parse ``text`` in this requirement's scheme."""
        return self.scheme(str(text))

    def satisfied_by(self, version: AnyVersion | str) -> bool:
        if isinstance(version, str):
            version = self.version(version)
        return all(_OPERATORS[op](version, bound) for op, bound in self.constraints)

    def __str__(self) -> str:
        return ", ".join(f"{op} {bound}" for op, bound in self.constraints)

    def __repr__(self) -> str:
        return f"Requirement({str(self)!r})"
