"""CLI tests for Tickler via Click's CliRunner.

Every run uses the output dispatcher or fails before any delivery, so no
test reaches the network.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from tickler._version import __version__
from tickler.cli import cli


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


def _write(path, text: str):
    path.write_text(text)
    return str(path)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestOutputDispatcher:
    """Runs that print reminders instead of sending them."""

    def test_due_directive_printed(self, runner, tmp_path) -> None:
        _write(
            tmp_path / "app.py",
            "# TODO(on: date('2015-03-01'), to: 'john@example.com')\n"
            "#   Revisit the greeting.\n"
            "x = 1\n",
        )
        result = runner.invoke(cli, ["--dispatcher", "output", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith(".")
        assert "To: john@example.com" in result.output
        assert "We are past the *2015-03-01* due date" in result.output
        assert "Revisit the greeting." in result.output
        assert "1 files, 1 directives, 1 dispatched, 0 errors" in result.output

    def test_nothing_due(self, runner, tmp_path) -> None:
        _write(tmp_path / "a.py", "# TODO(on: date('2999-01-01'), to: '#team')\n")
        _write(tmp_path / "b.py", "x = 1\n")
        result = runner.invoke(cli, ["--dispatcher", "output", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("..")
        assert "To:" not in result.output

    def test_errors_reported_and_exit_one(self, runner, tmp_path) -> None:
        _write(
            tmp_path / "bad.py",
            "# TODO(on: '2015-03-01', to: 'john@example.com')\n"
            "# TODO(on: issue_close('shopify'), to: '#team')\n",
        )
        result = runner.invoke(cli, ["--dispatcher", "output", str(tmp_path)])
        assert result.exit_code == 1
        assert "Incorrect `on:` event format: '2015-03-01'" in result.output
        assert "wrong number of arguments (given 1, expected 3)" in result.output

    def test_single_file_and_custom_tag(self, runner, tmp_path) -> None:
        path = _write(
            tmp_path / "a.py",
            "# TODO(on: date('2015'), to: '#a')\n# HACK(on: date('2015'), to: '#b')\n",
        )
        result = runner.invoke(
            cli, ["--dispatcher", "output", "--tag", "HACK", "--workers", "1", path]
        )
        assert result.exit_code == 0, result.output
        assert "To: #b" in result.output
        assert "To: #a" not in result.output


class TestConfiguration:
    """Startup validation happens before any file is scanned."""

    def test_slack_requires_token(self, runner, tmp_path) -> None:
        result = runner.invoke(
            cli,
            ["--fallback-channel", "#fallback", str(tmp_path)],
            env={"TICKLER_SLACK_TOKEN": None},
        )
        assert result.exit_code == 1
        assert "Missing Slack token" in result.output

    def test_slack_requires_fallback_channel(self, runner, tmp_path) -> None:
        result = runner.invoke(cli, ["--slack-token", "xoxb", str(tmp_path)])
        assert result.exit_code == 1
        assert "Missing fallback channel" in result.output

    def test_invalid_workers(self, runner, tmp_path) -> None:
        result = runner.invoke(cli, ["--dispatcher", "output", "--workers", "0", str(tmp_path)])
        assert result.exit_code == 2

    def test_missing_path(self, runner, tmp_path) -> None:
        result = runner.invoke(cli, ["--dispatcher", "output", str(tmp_path / "nope")])
        assert result.exit_code == 2

    def test_help_explains_ordinary_comments(self, runner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "ordinary" in result.output
        assert "unterminated" in result.output

    def test_version(self, runner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
