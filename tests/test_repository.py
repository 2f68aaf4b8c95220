from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import allure
import pytest
from conftest import make_sighting

from issue_agent.models import IssueStatus
from issue_agent.repository import IssueNotFoundError, SQLiteRepository

pytestmark = [
    allure.epic("Issue Store"),
    allure.feature("Issue Lifecycle"),
]


def test_upsert_inserts_new_issue_then_refreshes_mutable_fields(
    repository: SQLiteRepository,
) -> None:
    first = repository.upsert_issue(make_sighting())
    second = repository.upsert_issue(
        make_sighting(
            title="Login fails on Safari 18",
            body=None,
            state="closed",
            updated_at=datetime(2026, 10, 5, tzinfo=UTC),
        ),
    )

    assert first.is_new is True
    assert second.is_new is False
    assert second.issue_id == first.issue_id

    issue = repository.require_issue(first.issue_id)
    assert issue.title == "Login fails on Safari 18"
    assert issue.body is None
    assert issue.state == "closed"
    assert issue.updated_at == datetime(2026, 10, 5, tzinfo=UTC)
    assert issue.status is IssueStatus.NEW
    assert issue.display_ref == "webapp#42"


def test_refresh_keeps_lifecycle_state(repository: SQLiteRepository) -> None:
    issue_id = repository.upsert_issue(make_sighting()).issue_id
    repository.update_issue_branch(issue_id, "fix/issue-42-login")
    repository.mark_issue_ready(issue_id, Path("/tasks/webapp-42.md"))

    repository.upsert_issue(make_sighting(title="Edited"))

    issue = repository.require_issue(issue_id)
    assert issue.status is IssueStatus.READY
    assert issue.branch_name == "fix/issue-42-login"
    assert issue.task_file_path == "/tasks/webapp-42.md"


def test_lookup_by_number_accepts_short_and_full_repo_names(repository: SQLiteRepository) -> None:
    repository.upsert_issue(make_sighting())

    assert repository.get_issue_by_number("webapp", 42) is not None
    assert repository.get_issue_by_number("acme/webapp", 42) is not None
    assert repository.get_issue_by_number("webapp", 43) is None


def test_list_by_status_and_stats(repository: SQLiteRepository) -> None:
    ids = [
        repository.upsert_issue(make_sighting(github_id=100 + number, issue_number=number)).issue_id
        for number in range(1, 5)
    ]
    repository.update_issue_status(ids[1], IssueStatus.SKIPPED)
    repository.mark_issue_ready(ids[2], Path("/tasks/webapp-3.md"))
    repository.update_issue_status(ids[3], IssueStatus.PUSHED)

    new_issues = repository.list_issues_by_status(IssueStatus.NEW)
    assert [issue.issue_number for issue in new_issues] == [1]
    pending = repository.list_pending_issues()
    assert {issue.issue_number for issue in pending} == {1, 3}

    stats = repository.issue_stats()
    assert stats.total_issues == 4
    assert stats.new_issues == 1
    assert stats.ready_issues == 1
    assert stats.skipped_issues == 1
    assert stats.pushed_issues == 1
    assert stats.in_progress_issues == 0


def test_missing_issue_raises(repository: SQLiteRepository) -> None:
    assert repository.get_issue(999) is None
    with pytest.raises(IssueNotFoundError):
        repository.require_issue(999)
    with pytest.raises(IssueNotFoundError):
        repository.update_issue_status(999, IssueStatus.READY)


def test_repository_records_and_local_path(repository: SQLiteRepository) -> None:
    first_id = repository.upsert_repository(
        name="webapp",
        full_name="acme/webapp",
        clone_url="https://github.com/acme/webapp.git",
    )
    second_id = repository.upsert_repository(
        name="webapp",
        full_name="acme/webapp",
        clone_url="https://example.com/acme/webapp.git",
    )
    repository.update_repository_local_path("webapp", Path("/repos/webapp"))

    record = repository.get_repository("webapp")
    assert first_id == second_id
    assert record is not None
    assert record.clone_url == "https://example.com/acme/webapp.git"
    assert record.local_path == "/repos/webapp"
    assert record.last_cloned_at is not None
    assert repository.get_repository("unknown") is None
    with pytest.raises(LookupError):
        repository.update_repository_local_path("unknown", Path("/x"))


def test_scan_history_returns_latest(repository: SQLiteRepository) -> None:
    assert repository.get_last_scan() is None

    repository.record_scan(repos_scanned=2, issues_found=5, new_issues=1)
    repository.record_scan(repos_scanned=3, issues_found=6, new_issues=0)

    last = repository.get_last_scan()
    assert last is not None
    assert (last.repos_scanned, last.issues_found, last.new_issues) == (3, 6, 0)
    assert last.scanned_at.tzinfo is not None
