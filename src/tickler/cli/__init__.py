"""Tickler CLI -- scan sources for TODO directives and send reminders.

This module is only loaded via the ``tickler`` entry point defined in
pyproject.toml.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click
from rich.logging import RichHandler

from tickler._version import __version__
from tickler.cli.formatting import format_error, format_report_errors, format_summary, get_console
from tickler.dispatch import CILinkResolver, Dispatcher, OutputTransport, SlackTransport
from tickler.events import EventContext, Evaluator
from tickler.exceptions import ConfigError
from tickler.models.config import SLACK_TOKEN_ENV, DispatchConfig, SlackConfig, TicklerConfig
from tickler.runner import Runner

if TYPE_CHECKING:
    from rich.console import Console

    from tickler.dispatch import Transport


def _configure_logging(verbose: bool, console: Console) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_config(
    slack_token: str,
    fallback_channel: str | None,
    workers: int | None,
    deadline: float | None,
    tags: tuple[str, ...],
) -> TicklerConfig:
    dispatch = DispatchConfig(deadline=deadline)
    if workers is not None:
        dispatch = DispatchConfig(workers=workers, deadline=deadline)
    return TicklerConfig.from_env(
        tags=tags or None,
        slack=SlackConfig(token=slack_token, fallback_channel=fallback_channel),
        dispatch=dispatch,
    )


def _build_transport(name: str, config: TicklerConfig, console: Console) -> Transport:
    if name == "output":
        return OutputTransport(console)
    return SlackTransport.from_config(config.slack, config.http)


@click.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--slack-token",
    default="",
    envvar=SLACK_TOKEN_ENV,
    help=f"Slack bot token (or set {SLACK_TOKEN_ENV}).",
)
@click.option(
    "--fallback-channel",
    default=None,
    help="Channel notified when an assignee no longer exists.",
)
@click.option(
    "--dispatcher",
    "dispatcher_name",
    default="slack",
    type=click.Choice(["slack", "output"], case_sensitive=False),
    help="Where reminders go.",
)
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Delivery worker count.")
@click.option("--deadline", default=None, type=float, help="Seconds allowed for all deliveries.")
@click.option("--tag", "tags", multiple=True, help="Comment tag to look for (repeatable).")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr.")
@click.version_option(__version__, prog_name="tickler")
def cli(
    paths: tuple[str, ...],
    slack_token: str,
    fallback_channel: str | None,
    dispatcher_name: str,
    workers: int | None,
    deadline: float | None,
    tags: tuple[str, ...],
    verbose: bool,
) -> None:
    """Send reminders for TODO directives whose conditions are met.

    Scans PATHS (default: the current directory) for comments such as
    ``# TODO(on: date('2025-01-01'), to: 'jane@example.com')``.

    A tag call naming neither `on:` nor `to:`, such as ``# TODO(jane): fix``,
    is an ordinary comment and is skipped. A tag call that does not parse,
    for example one with an unterminated quote, is reported as an error.
    """
    console = get_console()
    err_console = get_console(stderr=True)
    _configure_logging(verbose, err_console)

    try:
        config = _build_config(slack_token, fallback_channel, workers, deadline, tags)
        transport = _build_transport(dispatcher_name.lower(), config, console)
    except (ConfigError, ValueError) as e:
        format_error(str(e), err_console)
        raise SystemExit(1) from None

    def progress(_filepath: str) -> None:
        click.echo(".", nl=False)

    try:
        with EventContext(config) as ctx:
            dispatcher = Dispatcher(
                transport,
                config.slack.fallback_channel,
                workers=config.dispatch.workers,
                deadline=config.dispatch.deadline,
                link_resolver=CILinkResolver(),
            )
            runner = Runner(Evaluator(ctx), dispatcher, tags=config.tags, on_file=progress)
            report = runner.run_paths(paths or (".",))
    finally:
        transport.close()

    click.echo()
    format_summary(report, console)
    format_report_errors(report, err_console)
    if report.exit_code:
        raise SystemExit(report.exit_code)
