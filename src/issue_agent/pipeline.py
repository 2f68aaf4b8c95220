"""Scan, prepare and watch cycles over an explicitly opened agent context."""

from __future__ import annotations

import logging
import signal
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from issue_agent.config import Settings
from issue_agent.context.builder import TaskBriefBuilder
from issue_agent.forge.client import GitHubClient
from issue_agent.models import IssueRecord, IssueStatus, ScanSummary
from issue_agent.notifier import Notifier
from issue_agent.repository import SQLiteRepository
from issue_agent.scanner import IssueScanner
from issue_agent.workspace import GitWorkspace

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AgentContext:
    """Collaborators shared by one CLI invocation or watch session."""

    settings: Settings
    repository: SQLiteRepository
    forge: GitHubClient
    workspace: GitWorkspace
    notifier: Notifier

    @property
    def scanner(self) -> IssueScanner:
        return IssueScanner(
            targets=self.settings.targets,
            scan_settings=self.settings.scan,
            forge=self.forge,
            repository=self.repository,
        )

    @property
    def brief_builder(self) -> TaskBriefBuilder:
        return TaskBriefBuilder(
            repository=self.repository,
            forge=self.forge,
            tasks_dir=self.settings.paths.tasks_dir,
            max_files=self.settings.context.max_files,
            max_lines_per_file=self.settings.context.max_lines_per_file,
        )


@contextmanager
def open_agent_context(
    settings: Settings,
    *,
    forge: GitHubClient | None = None,
    notifier: Notifier | None = None,
) -> Iterator[AgentContext]:
    """Create directories, migrate the store and yield a ready context."""

    settings.ensure_directories()
    repository = SQLiteRepository(
        settings.db_path,
        busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    client = forge or GitHubClient(
        token=settings.forge.token,
        api_url=settings.forge.api_url,
        timeout_seconds=settings.forge.request_timeout_seconds,
        max_retries=settings.forge.max_retries,
        retry_backoff_seconds=settings.forge.retry_backoff_seconds,
    )
    try:
        repository.init_schema()
        yield AgentContext(
            settings=settings,
            repository=repository,
            forge=client,
            workspace=GitWorkspace(settings.paths.repos_dir, token=settings.forge.token),
            notifier=notifier or Notifier(settings.notifications),
        )
    finally:
        client.close()
        repository.close()


@dataclass(slots=True)
class CycleResult:
    """Outcome of one scan cycle."""

    summary: ScanSummary
    ready: list[IssueRecord] = field(default_factory=list)
    skipped: list[IssueRecord] = field(default_factory=list)


def prepare_issue(
    context: AgentContext,
    issue: IssueRecord,
    *,
    mark_ready: bool = True,
) -> IssueRecord:
    """Clone, branch and brief one issue; returns the refreshed record."""

    repo = context.repository.get_repository(issue.repo_name)
    clone_url = repo.clone_url if repo else _default_clone_url(issue.repo_full_name)

    repo_path = context.workspace.ensure_cloned(issue.repo_name, clone_url)
    if repo is not None:
        context.repository.update_repository_local_path(issue.repo_name, repo_path)

    branch_name = context.workspace.create_issue_branch(
        issue.repo_name,
        issue.issue_number,
        issue.title,
    )
    context.repository.update_issue_branch(issue.id, branch_name)
    context.brief_builder.build(issue.id, repo_path, branch_name, mark_ready=mark_ready)
    return context.repository.require_issue(issue.id)


def process_new_issues(context: AgentContext) -> tuple[list[IssueRecord], list[IssueRecord]]:
    """Prepare every ``new`` issue; failures mark that issue ``skipped``."""

    ready: list[IssueRecord] = []
    skipped: list[IssueRecord] = []
    for issue in context.repository.list_issues_by_status(IssueStatus.NEW):
        try:
            prepared = prepare_issue(context, issue)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to process issue %s", issue.display_ref)
            context.repository.update_issue_status(issue.id, IssueStatus.SKIPPED)
            skipped.append(issue)
            continue
        logger.info("Issue %s ready: %s", prepared.display_ref, prepared.task_file_path)
        context.notifier.issue_ready(prepared)
        ready.append(prepared)
    return ready, skipped


def run_scan_cycle(context: AgentContext) -> CycleResult | None:
    """Scan, announce and prepare new issues; a failed cycle returns ``None``."""

    try:
        summary = context.scanner.scan()
        context.notifier.new_issues(context.repository.list_issues_by_status(IssueStatus.NEW))
        ready, skipped = process_new_issues(context)
        context.notifier.scan_complete(summary)
    except Exception as error:  # noqa: BLE001
        logger.exception("Scan cycle failed")
        context.notifier.error(f"Scan failed: {error}")
        return None
    return CycleResult(summary=summary, ready=ready, skipped=skipped)


class WatchLoop:
    """Runs scan cycles every ``interval_minutes`` until stopped."""

    def __init__(self, context: AgentContext, *, interval_minutes: int) -> None:
        self.context = context
        self.interval_seconds = interval_minutes * 60
        self._stop_requested = False
        self._stop_signal_name: str | None = None

    def run(self, *, max_cycles: int | None = None) -> int:
        """Run cycles now and on every interval; returns the number of cycles run."""

        cycles = 0
        logger.info("Watching for issues every %s seconds", self.interval_seconds)
        with self._signal_handlers():
            while not self._stop_requested:
                run_scan_cycle(self.context)
                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break
                self._sleep_with_stop(self.interval_seconds)
        if self._stop_requested:
            logger.info("Watch stopped by %s", self._stop_signal_name or "request")
        return cycles

    def request_stop(self, signal_name: str = "request") -> None:
        self._stop_requested = True
        self._stop_signal_name = signal_name

    def _sleep_with_stop(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self._stop_requested and time.monotonic() < deadline:
            time.sleep(min(0.5, max(0.0, deadline - time.monotonic())))

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            self.request_stop(name)

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
            installed = True
        except ValueError:
            # Signal handlers can only be installed in main thread.
            installed = False
        try:
            yield
        finally:
            if installed:
                signal.signal(signal.SIGINT, original_sigint)
                signal.signal(signal.SIGTERM, original_sigterm)


def _default_clone_url(repo_full_name: str) -> str:
    return f"https://github.com/{repo_full_name}.git"
