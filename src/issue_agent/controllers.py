"""Controllers for issue-agent CLI commands."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from pathlib import Path

from issue_agent.config import Settings
from issue_agent.models import ACTIVE_STATUSES, IssueRecord, IssueStatus
from issue_agent.pipeline import (
    AgentContext,
    WatchLoop,
    open_agent_context,
    prepare_issue,
    run_scan_cycle,
)
from issue_agent.repository import SQLiteRepository

logger = logging.getLogger(__name__)

ContextFactory = Callable[[Settings], AbstractContextManager[AgentContext]]

OPENABLE_STATUSES = (IssueStatus.READY, IssueStatus.IN_PROGRESS)
PUSHABLE_STATUSES = (IssueStatus.READY, IssueStatus.IN_PROGRESS, IssueStatus.FIXED)
BRIEF_READY_STATUSES = (IssueStatus.NEW, IssueStatus.SKIPPED)


class ScanFailedError(RuntimeError):
    """A scan cycle failed; details were logged and sent to the notifier."""


@dataclass(slots=True)
class ScanCommand:
    """CLI inputs for scan command."""

    db_path: Path | None


@dataclass(slots=True)
class WatchCommand:
    """CLI inputs for watch command."""

    db_path: Path | None
    interval_minutes: int | None
    max_cycles: int | None


@dataclass(slots=True)
class StatusCommand:
    """CLI inputs for status command."""

    db_path: Path | None
    limit: int


@dataclass(slots=True)
class BriefCommand:
    """CLI inputs for brief command."""

    db_path: Path | None
    issue_ref: str


@dataclass(slots=True)
class OpenCommand:
    """CLI inputs for open command."""

    db_path: Path | None
    issue_ref: str
    editor: str | None


@dataclass(slots=True)
class PushCommand:
    """CLI inputs for push command."""

    db_path: Path | None
    issue_ref: str
    message: str | None


@dataclass(slots=True)
class DiffCommand:
    """CLI inputs for diff command."""

    db_path: Path | None
    issue_ref: str


class AgentCliController:
    """Coordinates issue-agent command execution."""

    def __init__(self, context_factory: ContextFactory = open_agent_context) -> None:
        self._open_context = context_factory

    def scan(self, command: ScanCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        with self._open_context(settings) as context:
            result = run_scan_cycle(context)
        if result is None:
            raise ScanFailedError("Scan failed. See the log output for details.")

        summary = result.summary
        lines = [
            "Scan completed: "
            f"repos={summary.repos_scanned} issues={summary.issues_found} "
            f"new={summary.new_issues} ready={len(result.ready)} skipped={len(result.skipped)}",
        ]
        lines.extend(
            f"  ready {issue.display_ref}: {issue.task_file_path}" for issue in result.ready
        )
        lines.extend(f"  skipped {issue.display_ref}: {issue.title}" for issue in result.skipped)
        return lines

    def watch(self, command: WatchCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        if command.interval_minutes is not None:
            settings.scan.interval_minutes = command.interval_minutes
        settings.validate()
        with self._open_context(settings) as context:
            cycles = WatchLoop(
                context,
                interval_minutes=settings.scan.interval_minutes,
            ).run(max_cycles=command.max_cycles)
        return [f"Watch stopped after {cycles} scan cycle(s)."]

    def status(self, command: StatusCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with self._open_context(settings) as context:
            stats = context.repository.issue_stats()
            last_scan = context.repository.get_last_scan()
            pending = context.repository.list_issues_by_status(ACTIVE_STATUSES)

        lines = settings.target_summary() or ["No targets configured."]
        lines.append(
            "Issues: "
            f"total={stats.total_issues} new={stats.new_issues} ready={stats.ready_issues} "
            f"in_progress={stats.in_progress_issues} fixed={stats.fixed_issues} "
            f"pushed={stats.pushed_issues} skipped={stats.skipped_issues}",
        )
        if last_scan is None:
            lines.append("Last scan: never")
        else:
            lines.append(
                "Last scan: "
                f"{last_scan.scanned_at.isoformat(timespec='seconds')} "
                f"repos={last_scan.repos_scanned} issues={last_scan.issues_found} "
                f"new={last_scan.new_issues}",
            )

        if not pending:
            lines.append("No pending issues.")
            return lines
        lines.append(f"Pending issues ({len(pending)}):")
        for issue in pending[: command.limit]:
            lines.append(f"  {issue.display_ref} [{issue.status.value}] {issue.title}")
        if len(pending) > command.limit:
            lines.append(f"  ... {len(pending) - command.limit} more")
        return lines

    def brief(self, command: BriefCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with self._open_context(settings) as context:
            issue = resolve_issue(
                context.repository,
                command.issue_ref,
                (*ACTIVE_STATUSES, IssueStatus.SKIPPED),
            )
            mark_ready = issue.status in BRIEF_READY_STATUSES
            if context.workspace.is_cloned(issue.repo_name):
                branch_name = issue.branch_name
                if not branch_name:
                    branch_name = context.workspace.create_issue_branch(
                        issue.repo_name,
                        issue.issue_number,
                        issue.title,
                    )
                    context.repository.update_issue_branch(issue.id, branch_name)
                path = context.brief_builder.build(
                    issue.id,
                    context.workspace.path_for(issue.repo_name),
                    branch_name,
                    mark_ready=mark_ready,
                )
            else:
                prepared = prepare_issue(context, issue, mark_ready=mark_ready)
                path = Path(str(prepared.task_file_path))
        return [f"Task brief for {issue.display_ref}: {path}"]

    def open(self, command: OpenCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        editor = command.editor or settings.editor
        with self._open_context(settings) as context:
            issue = resolve_issue(context.repository, command.issue_ref, OPENABLE_STATUSES)
            if issue.status not in OPENABLE_STATUSES:
                raise ValueError(
                    f"Issue {issue.display_ref} is {issue.status.value}; "
                    "only ready or in-progress issues can be opened.",
                )
            repo_path = context.workspace.require_path(issue.repo_name)

            lines = [f"Opening {issue.display_ref}: {issue.title}"]
            try:
                subprocess.Popen([*shlex.split(editor), str(repo_path)])  # noqa: S603
                lines.append(f"Editor: {editor} {repo_path}")
            except FileNotFoundError:
                logger.warning("Editor command not found: %s", editor)
                lines.append(f"Editor {editor!r} not found. Open {repo_path} manually.")
            if issue.task_file_path:
                lines.append(f"Task brief: {issue.task_file_path}")
            if issue.branch_name:
                lines.append(f"Branch: {issue.branch_name}")

            context.repository.update_issue_status(issue.id, IssueStatus.IN_PROGRESS)
        return lines

    def push(self, command: PushCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with self._open_context(settings) as context:
            issue = resolve_issue(context.repository, command.issue_ref, PUSHABLE_STATUSES)
            if issue.status not in PUSHABLE_STATUSES:
                raise ValueError(
                    f"Issue {issue.display_ref} is {issue.status.value}; nothing to push.",
                )
            status = context.workspace.status(issue.repo_name)
            lines = [f"Branch: {status.branch}"]
            if not status.is_clean:
                lines.append(
                    f"Changes: {len(status.modified)} modified, {len(status.added)} added, "
                    f"{len(status.deleted)} deleted",
                )
                message = command.message or f"Fix #{issue.issue_number}: {issue.title}"
                commit = context.workspace.commit_all(issue.repo_name, message)
                context.repository.update_issue_status(issue.id, IssueStatus.FIXED)
                lines.append(f"Committed {commit[:12]}: {message}")

            repo = context.repository.get_repository(issue.repo_name)
            branch = context.workspace.push(
                issue.repo_name,
                clone_url=repo.clone_url if repo else None,
            )
            context.repository.update_issue_status(issue.id, IssueStatus.PUSHED)

        lines.append(f"Pushed {branch} for {issue.display_ref}")
        lines.append(f"Create a pull request: {compare_url(issue.html_url, branch)}")
        return lines

    def diff(self, command: DiffCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with self._open_context(settings) as context:
            issue = resolve_issue(context.repository, command.issue_ref, ACTIVE_STATUSES)
            diff = context.workspace.diff(issue.repo_name)
        if not diff:
            return [f"No changes in {issue.display_ref}."]
        return diff.rstrip("\n").splitlines()


def resolve_issue(
    repository: SQLiteRepository,
    issue_ref: str,
    statuses: Iterable[IssueStatus] = ACTIVE_STATUSES,
) -> IssueRecord:
    """Find an issue by ``repo#number`` or by a bare number among ``statuses``."""

    reference = issue_ref.strip()
    repo_name, separator, number_text = reference.rpartition("#")
    if not separator:
        number_text = reference
    number_text = number_text.strip()
    if not number_text.isdigit():
        raise ValueError(f"Invalid issue reference: {issue_ref!r}. Expected repo#number or number.")
    issue_number = int(number_text)

    if repo_name.strip():
        issue = repository.get_issue_by_number(repo_name.strip(), issue_number)
        if issue is None:
            raise LookupError(f"Issue not found: {reference}")
        return issue

    matches = [
        issue
        for issue in repository.list_issues_by_status(tuple(statuses))
        if issue.issue_number == issue_number
    ]
    if not matches:
        raise LookupError(f"Issue not found: #{issue_number}")
    if len(matches) > 1:
        refs = ", ".join(issue.display_ref for issue in matches)
        raise ValueError(f"Issue #{issue_number} is ambiguous ({refs}); use repo#number.")
    return matches[0]


def compare_url(issue_html_url: str, branch: str) -> str:
    repo_url = issue_html_url.rsplit("/issues/", 1)[0]
    return f"{repo_url}/compare/{branch}?expand=1"
