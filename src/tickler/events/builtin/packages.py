"""Package release and dependency bump checks.

``package_release`` asks the package registry which versions exist
(``GET /api/v1/versions/{name}.json``); ``pypi_release`` does the same
against the PyPI JSON API; ``package_bump`` looks at the version resolved
in the local environment.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from tickler.events.requirement import PythonVersion, Requirement
from tickler.exceptions import EventArgumentError, EventLookupError
from tickler.models.outcome import Unresolvable

if TYPE_CHECKING:
    import httpx

    from tickler.events.context import EventContext

logger = logging.getLogger(__name__)


def _not_found(name: str) -> Unresolvable:
    return Unresolvable(
        f"The package *{name}* doesn't seem to exist, I can't determine if "
        f"your TODO is ready to be addressed."
    )


def _released(name: str, version: str) -> str:
    return (
        f"The package *{name}* was released to version *{version}* and "
        f"your TODO is now ready to be addressed."
    )


def _json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise EventLookupError(
            f"Invalid JSON from {response.request.url}: {exc}"
        ) from exc


def _first_satisfying(requirement: Requirement, numbers: Iterable[str]) -> str | None:
    for number in numbers:
        try:
            version = requirement.version(number)
        except EventArgumentError:
            logger.debug("Skipping unparsable version %r", number)
            continue
        if requirement.satisfied_by(version):
            return number
    return None


def package_release(ctx: EventContext, name: str, *requirements: str) -> str | Unresolvable | None:
    requirement = Requirement.parse(*requirements)
    response = ctx.registry_client.get(f"/api/v1/versions/{name}.json")
    if not response.is_success:
        return _not_found(name)

    entries = _json(response)
    if not isinstance(entries, list):
        raise EventLookupError(f"Unexpected response for package {name!r}: {entries!r}")

    numbers = [str(entry["number"]) for entry in entries if isinstance(entry, dict) and "number" in entry]
    version = _first_satisfying(requirement, numbers)
    return _released(name, version) if version else None


def pypi_release(ctx: EventContext, name: str, *requirements: str) -> str | Unresolvable | None:
    requirement = Requirement.parse(*requirements, scheme=PythonVersion)
    response = ctx.pypi_client.get(f"/pypi/{name}/json")
    if not response.is_success:
        return _not_found(name)

    data = _json(response)
    releases = data.get("releases") if isinstance(data, dict) else None
    if not isinstance(releases, dict):
        raise EventLookupError(f"Unexpected response for package {name!r}")

    version = _first_satisfying(requirement, releases)
    return _released(name, version) if version else None


def package_bump(ctx: EventContext, name: str, *requirements: str) -> str | Unresolvable | None:
    requirement = Requirement.parse(*requirements, scheme=PythonVersion)
    installed = ctx.installed_version(name)
    if installed is None:
        return Unresolvable(
            f"The package *{name}* is not in your dependencies, I can't determine if "
            f"your TODO is ready to be addressed."
        )
    if requirement.satisfied_by(installed):
        return (
            f"The package *{name}* was updated to version *{installed}* and "
            f"your TODO is now ready to be addressed."
        )
    return None
