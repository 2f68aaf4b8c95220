"""Notification sink for issue and scan events."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from issue_agent.config import NotificationSettings
from issue_agent.models import IssueRecord, ScanSummary

logger = logging.getLogger(__name__)

MAX_ISSUES_LISTED = 3
MAX_REPOS_LISTED = 4


class NotificationType(str, Enum):
    NEW_ISSUE = "new_issue"
    ISSUE_READY = "issue_ready"
    SCAN_COMPLETE = "scan_complete"
    ERROR = "error"


@dataclass(slots=True)
class Notification:
    title: str
    message: str
    type: NotificationType


class NotificationSender(Protocol):
    """Delivers one notification; delivery failures must not propagate."""

    def send(self, notification: Notification) -> None:
        """Deliver ``notification`` to the user."""


class LogSender:
    """Sends notifications to the ``issue_agent.notifications`` logger."""

    def __init__(self) -> None:
        self._logger = logging.getLogger("issue_agent.notifications")

    def send(self, notification: Notification) -> None:
        level = logging.ERROR if notification.type is NotificationType.ERROR else logging.INFO
        self._logger.log(level, "%s: %s", notification.title, notification.message)


class Notifier:
    """Filters events by preference and formats them for a sender."""

    def __init__(
        self,
        settings: NotificationSettings,
        sender: NotificationSender | None = None,
    ) -> None:
        self.settings = settings
        self.sender = sender or LogSender()

    def notify(self, notification: Notification) -> None:
        if not self._should_notify(notification.type):
            logger.debug("Notification skipped (disabled): %s", notification.title)
            return
        try:
            self.sender.send(notification)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to send notification: %s", notification.title)

    def new_issues(self, issues: list[IssueRecord]) -> None:
        """Announce newly discovered issues, batched into one notification."""

        if not issues:
            return
        if len(issues) == 1:
            issue = issues[0]
            self.notify(
                Notification(
                    title=f"New Issue in {issue.repo_name}",
                    message=f"#{issue.issue_number}: {issue.title}",
                    type=NotificationType.NEW_ISSUE,
                ),
            )
            return

        by_repo: dict[str, list[IssueRecord]] = defaultdict(list)
        for issue in issues:
            by_repo[issue.repo_name].append(issue)

        if len(by_repo) == 1:
            repo_name, repo_issues = next(iter(by_repo.items()))
            listed = [
                f"#{issue.issue_number}: {issue.title}" for issue in repo_issues[:MAX_ISSUES_LISTED]
            ]
            if len(repo_issues) > MAX_ISSUES_LISTED:
                listed.append(f"...and {len(repo_issues) - MAX_ISSUES_LISTED} more")
            self.notify(
                Notification(
                    title=f"{len(repo_issues)} New Issues in {repo_name}",
                    message="\n".join(listed),
                    type=NotificationType.NEW_ISSUE,
                ),
            )
            return

        self.notify(
            Notification(
                title=f"{len(issues)} New Issues Found",
                message="\n".join(
                    f"{repo_name}: {_plural(len(repo_issues), 'issue')}"
                    for repo_name, repo_issues in list(by_repo.items())[:MAX_REPOS_LISTED]
                ),
                type=NotificationType.NEW_ISSUE,
            ),
        )

    def issue_ready(self, issue: IssueRecord) -> None:
        self.notify(
            Notification(
                title="Issue Ready to Fix",
                message=(
                    f"{issue.display_ref}: {issue.title}\n\n"
                    f"Run: issue-agent open {issue.display_ref}"
                ),
                type=NotificationType.ISSUE_READY,
            ),
        )

    def scan_complete(self, summary: ScanSummary) -> None:
        if summary.new_issues <= 0:
            return
        self.notify(
            Notification(
                title="Issue Agent Scan Complete",
                message=(
                    f"Found {_plural(summary.new_issues, 'new issue')} "
                    f"across {summary.repos_scanned} repos"
                ),
                type=NotificationType.SCAN_COMPLETE,
            ),
        )

    def error(self, message: str) -> None:
        self.notify(
            Notification(title="Issue Agent Error", message=message, type=NotificationType.ERROR),
        )

    def _should_notify(self, notification_type: NotificationType) -> bool:
        if not self.settings.enabled:
            return False
        if notification_type in {NotificationType.NEW_ISSUE, NotificationType.ISSUE_READY}:
            return self.settings.on_new_issue
        if notification_type is NotificationType.SCAN_COMPLETE:
            return self.settings.on_scan_complete
        return self.settings.on_error


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
