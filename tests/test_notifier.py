from __future__ import annotations

import logging
from dataclasses import replace

import allure
from conftest import make_sighting

from issue_agent.config import NotificationSettings
from issue_agent.models import IssueRecord, ScanSummary
from issue_agent.notifier import Notification, NotificationType, Notifier
from issue_agent.repository import SQLiteRepository

pytestmark = [
    allure.epic("Notifications"),
    allure.feature("Notification Sink"),
]


class RecordingSender:
    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)


def _issues(repository: SQLiteRepository, *specs: tuple[str, int]) -> list[IssueRecord]:
    records = []
    for index, (repo_name, number) in enumerate(specs):
        issue_id = repository.upsert_issue(
            make_sighting(
                github_id=index + 1,
                repo_name=repo_name,
                repo_full_name=f"acme/{repo_name}",
                issue_number=number,
                title=f"Problem {number}",
            ),
        ).issue_id
        records.append(repository.require_issue(issue_id))
    return records


def test_single_new_issue(repository: SQLiteRepository) -> None:
    sender = RecordingSender()

    Notifier(NotificationSettings(), sender).new_issues(_issues(repository, ("webapp", 7)))

    assert sender.sent == [
        Notification("New Issue in webapp", "#7: Problem 7", NotificationType.NEW_ISSUE),
    ]


def test_many_issues_in_one_repo_are_listed_up_to_three(repository: SQLiteRepository) -> None:
    sender = RecordingSender()
    issues = _issues(repository, *(("webapp", number) for number in range(1, 6)))

    Notifier(NotificationSettings(), sender).new_issues(issues)

    (notification,) = sender.sent
    assert notification.title == "5 New Issues in webapp"
    assert notification.message.splitlines() == [
        "#1: Problem 1",
        "#2: Problem 2",
        "#3: Problem 3",
        "...and 2 more",
    ]


def test_issues_across_repos_are_counted_per_repo(repository: SQLiteRepository) -> None:
    sender = RecordingSender()
    issues = _issues(
        repository,
        ("a", 1),
        ("a", 2),
        ("b", 1),
        ("c", 1),
        ("d", 1),
        ("e", 1),
    )

    Notifier(NotificationSettings(), sender).new_issues(issues)

    (notification,) = sender.sent
    assert notification.title == "6 New Issues Found"
    assert notification.message.splitlines() == [
        "a: 2 issues",
        "b: 1 issue",
        "c: 1 issue",
        "d: 1 issue",
    ]


def test_preferences_gate_notifications(repository: SQLiteRepository) -> None:
    sender = RecordingSender()
    (issue,) = _issues(repository, ("webapp", 7))
    notifier = Notifier(NotificationSettings(on_new_issue=False), sender)

    notifier.new_issues([issue])
    notifier.issue_ready(issue)
    notifier.scan_complete(ScanSummary(repos_scanned=1, issues_found=1, new_issues=1))
    notifier.error("boom")

    assert [notification.type for notification in sender.sent] == [NotificationType.ERROR]

    sender.sent.clear()
    Notifier(replace(NotificationSettings(), enabled=False), sender).error("boom")
    assert sender.sent == []


def test_scan_complete_only_when_new_issues() -> None:
    sender = RecordingSender()
    notifier = Notifier(NotificationSettings(on_scan_complete=True), sender)

    notifier.scan_complete(ScanSummary(repos_scanned=3, issues_found=4, new_issues=0))
    notifier.scan_complete(ScanSummary(repos_scanned=3, issues_found=4, new_issues=2))

    assert [notification.message for notification in sender.sent] == [
        "Found 2 new issues across 3 repos",
    ]


def test_issue_ready_mentions_open_command(repository: SQLiteRepository) -> None:
    sender = RecordingSender()
    (issue,) = _issues(repository, ("webapp", 7))

    Notifier(NotificationSettings(), sender).issue_ready(issue)

    assert "issue-agent open webapp#7" in sender.sent[0].message


def test_default_sender_logs_and_failures_do_not_propagate(caplog) -> None:
    class BrokenSender:
        def send(self, notification: Notification) -> None:
            raise OSError("no display")

    caplog.set_level(logging.INFO)
    Notifier(NotificationSettings()).error("disk full")
    Notifier(NotificationSettings(), BrokenSender()).error("disk full")

    messages = [record.getMessage() for record in caplog.records]
    assert "Issue Agent Error: disk full" in messages
    assert "Failed to send notification: Issue Agent Error" in messages
