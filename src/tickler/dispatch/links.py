"""Deep links from CI build metadata.

When running under GitHub Actions or Buildkite, a fired Directive can link
to its exact lines at the commit being built. Outside CI no link is made.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from tickler.dispatch.message import Link
from tickler.models.directive import Directive

# Inline/stdin sources have nothing to link to.
UNLINKABLE_PATHS = frozenset({"-", "-e", "<stdin>"})

REPO_PATH_ENV = "TICKLER_REPO_PATH"


def _relative_prefix(environ: Mapping[str, str], checkout_key: str) -> str:
    if REPO_PATH_ENV in environ:
        return environ[REPO_PATH_ENV]
    checkout = environ.get(checkout_key)
    if not checkout:
        return ""
    prefix = os.path.relpath(os.getcwd(), checkout)
    return "" if prefix == "." else prefix


def _join(prefix: str, path: str) -> str:
    path = path.removeprefix("./")
    return f"{prefix.strip('/')}/{path}" if prefix.strip("/") else path


def _line_fragment(directive: Directive) -> str | None:
    start, end = directive.start_line, directive.end_line
    if start is None:
        return None
    if end is None or end == start:
        return f"L{start}"
    return f"L{start}-L{end}"


def _link(directive: Directive, repo_url: str, commit: str, relative_path: str) -> Link:
    url = f"{repo_url}/blob/{commit}/{relative_path}"
    fragment = _line_fragment(directive)
    if fragment:
        url = f"{url}#{fragment}"
    ref = directive.location.line_reference
    display = f"{relative_path}:{ref}" if ref else relative_path
    return Link(url=url, display=display)


class CILinkResolver:
    """Callable returning a Link for a Directive, or None outside CI."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self.environ = dict(os.environ if environ is None else environ)

    def __call__(self, directive: Directive) -> Link | None:
        if directive.file in UNLINKABLE_PATHS:
            return None
        return self._from_github_actions(directive) or self._from_buildkite(directive)

    def _from_github_actions(self, directive: Directive) -> Link | None:
        env = self.environ
        if not env.get("GITHUB_ACTIONS"):
            return None
        path = _join(_relative_prefix(env, "GITHUB_WORKSPACE"), directive.file)
        repo = f"{env.get('GITHUB_SERVER_URL', 'https://github.com')}/{env.get('GITHUB_REPOSITORY', '')}"
        return _link(directive, repo, env.get("GITHUB_SHA", ""), path)

    def _from_buildkite(self, directive: Directive) -> Link | None:
        env = self.environ
        if not env.get("BUILDKITE"):
            return None
        path = _join(_relative_prefix(env, "BUILDKITE_BUILD_CHECKOUT_PATH"), directive.file)
        repo = env.get("BUILDKITE_REPO", "").removesuffix(".git")
        return _link(directive, repo, env.get("BUILDKITE_COMMIT", ""), path)
