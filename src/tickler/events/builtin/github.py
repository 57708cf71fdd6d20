"""Issue tracker checks: issue/PR closing, pins, and context lookups.

A 4xx answer usually means a private repository without credentials, so it
produces an explanatory Unresolvable instead of an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tickler.exceptions import EventLookupError
from tickler.models.config import GITHUB_TOKEN_ENV
from tickler.models.outcome import Unresolvable

if TYPE_CHECKING:
    import httpx

    from tickler.events.context import EventContext


def _unreachable(kind: str, number: str | int, organization: str, repo: str) -> Unresolvable:
    return Unresolvable(
        f"I can't retrieve the information from the {kind} *{number}* in the "
        f"*{organization}/{repo}* repository.\n\n"
        f"If the repository is a private one, make sure to export the "
        f"`{GITHUB_TOKEN_ENV}`\nenvironment variable with a correct GitHub token.\n"
    )


def _payload(response: httpx.Response) -> dict:
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError as exc:
        raise EventLookupError(f"Invalid JSON from {response.request.url}: {exc}") from exc
    if not isinstance(data, dict):
        raise EventLookupError(f"Unexpected response from {response.request.url}")
    return data


def _issue_url(ctx: EventContext, organization: str, repo: str, kind: str, number: str | int) -> str:
    return f"{ctx.config.github.web_url}/{organization}/{repo}/{kind}/{number}"


def _describe(issue: dict) -> tuple[str, str, str]:
    assignee = issue.get("assignee")
    login = f"@{assignee['login']}" if isinstance(assignee, dict) and assignee.get("login") else "unassigned"
    return issue.get("title", ""), issue.get("state", "unknown"), login


def issue_close(ctx: EventContext, organization: str, repo: str, number: str | int) -> str | Unresolvable | None:
    response = ctx.github_get(organization, repo, "issues", number)
    if response.is_client_error:
        return _unreachable("issue", number, organization, repo)
    if _payload(response).get("state") == "closed":
        url = _issue_url(ctx, organization, repo, "issues", number)
        return f"The issue {url} is now closed, your TODO is ready to be addressed."
    return None


def pull_request_close(ctx: EventContext, organization: str, repo: str, number: str | int) -> str | Unresolvable | None:
    response = ctx.github_get(organization, repo, "pulls", number)
    if response.is_client_error:
        return _unreachable("pull request", number, organization, repo)
    if _payload(response).get("state") == "closed":
        url = _issue_url(ctx, organization, repo, "pull", number)
        return f"The pull request {url} is now closed, your TODO is ready to be addressed."
    return None


def issue_pin(ctx: EventContext, organization: str, repo: str, number: str | int) -> str | Unresolvable:
    """Always fires: pins the directive to an issue and describes it."""
    response = ctx.github_get(organization, repo, "issues", number)
    if response.is_client_error:
        return _unreachable("issue", number, organization, repo)
    title, state, assignee = _describe(_payload(response))
    url = _issue_url(ctx, organization, repo, "issues", number)
    return f'📌 Pinned to issue #{number}: "{title}" [{state}] ({assignee}) - {url}'


def issue_context(ctx: EventContext, organization: str, repo: str, number: str | int) -> str | None:
    """Describe an issue for a ``context:`` reference; None if unreachable."""
    response = ctx.github_get(organization, repo, "issues", number)
    if response.is_client_error:
        return None
    title, state, assignee = _describe(_payload(response))
    url = _issue_url(ctx, organization, repo, "issues", number)
    return f'📌 Context: Issue #{number} - "{title}" [{state}] ({assignee}) - {url}'
