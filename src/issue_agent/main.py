"""CLI entrypoint for issue-agent."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from issue_agent import __version__
from issue_agent.controllers import (
    AgentCliController,
    BriefCommand,
    DiffCommand,
    OpenCommand,
    PushCommand,
    ScanCommand,
    StatusCommand,
    WatchCommand,
)
from issue_agent.forge.client import ForgeError

click.rich_click.USE_MARKDOWN = True
AGENT_CONTROLLER = AgentCliController()
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
issue_argument = click.argument("issue_ref", metavar="ISSUE")


@click.group()
@click.version_option(version=__version__, prog_name="issue-agent")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging verbosity.",
)
def issue_agent(log_level: str) -> None:
    """Watch forge repositories for issues and prepare them for fixing.

    ISSUE arguments accept `repo#number` or a bare issue number.
    """

    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)


@issue_agent.command("scan")
@db_path_option
def scan(db_path: Path | None) -> None:
    """Run one scan cycle and prepare task briefs for new issues."""

    _emit_lines(_run(lambda: AGENT_CONTROLLER.scan(ScanCommand(db_path=db_path))))


@issue_agent.command("watch")
@db_path_option
@click.option(
    "--interval",
    "interval_minutes",
    type=click.IntRange(min=1),
    default=None,
    help="Minutes between scans. Defaults to ISSUE_AGENT_SCAN_INTERVAL_MINUTES.",
)
@click.option(
    "--max-cycles",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many scan cycles.",
)
def watch(db_path: Path | None, interval_minutes: int | None, max_cycles: int | None) -> None:
    """Scan in the foreground every interval until interrupted."""

    _emit_lines(
        _run(
            lambda: AGENT_CONTROLLER.watch(
                WatchCommand(
                    db_path=db_path,
                    interval_minutes=interval_minutes,
                    max_cycles=max_cycles,
                ),
            ),
        ),
    )


@issue_agent.command("status")
@db_path_option
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=20,
    show_default=True,
    help="How many pending issues to list.",
)
def status(db_path: Path | None, limit: int) -> None:
    """Show targets, issue counts, last scan and pending issues."""

    _emit_lines(_run(lambda: AGENT_CONTROLLER.status(StatusCommand(db_path=db_path, limit=limit))))


@issue_agent.command("brief")
@db_path_option
@issue_argument
def brief(db_path: Path | None, issue_ref: str) -> None:
    """Rebuild the task brief for one issue."""

    _emit_lines(
        _run(lambda: AGENT_CONTROLLER.brief(BriefCommand(db_path=db_path, issue_ref=issue_ref))),
    )


@issue_agent.command("open")
@db_path_option
@issue_argument
@click.option("--editor", default=None, help="Editor command. Defaults to ISSUE_AGENT_EDITOR.")
def open_issue(db_path: Path | None, issue_ref: str, editor: str | None) -> None:
    """Open a ready issue's working copy in the editor."""

    _emit_lines(
        _run(
            lambda: AGENT_CONTROLLER.open(
                OpenCommand(db_path=db_path, issue_ref=issue_ref, editor=editor),
            ),
        ),
    )


@issue_agent.command("push")
@db_path_option
@issue_argument
@click.option("-m", "--message", default=None, help="Commit message for pending changes.")
def push(db_path: Path | None, issue_ref: str, message: str | None) -> None:
    """Commit pending changes and push the issue branch."""

    _emit_lines(
        _run(
            lambda: AGENT_CONTROLLER.push(
                PushCommand(db_path=db_path, issue_ref=issue_ref, message=message),
            ),
        ),
    )


@issue_agent.command("diff")
@db_path_option
@issue_argument
def diff(db_path: Path | None, issue_ref: str) -> None:
    """Show uncommitted changes in an issue's working copy."""

    _emit_lines(
        _run(lambda: AGENT_CONTROLLER.diff(DiffCommand(db_path=db_path, issue_ref=issue_ref))),
    )


def _run(action: Callable[[], list[str]]) -> list[str]:
    try:
        return action()
    except (ValueError, LookupError, OSError, RuntimeError, ForgeError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    issue_agent()
