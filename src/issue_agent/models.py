"""Domain models for issue tracking, scanning and storage."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class IssueStatus(str, Enum):
    """Lifecycle states for a tracked issue."""

    NEW = "new"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    FIXED = "fixed"
    PUSHED = "pushed"
    SKIPPED = "skipped"


ACTIVE_STATUSES = (
    IssueStatus.NEW,
    IssueStatus.READY,
    IssueStatus.IN_PROGRESS,
    IssueStatus.FIXED,
)


@dataclass(slots=True)
class IssueSighting:
    """Issue payload observed on the forge, ready for upsert."""

    github_id: int
    repo_name: str
    repo_full_name: str
    issue_number: int
    title: str
    body: str | None
    state: str
    html_url: str
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class IssueRecord:
    """Issue row as persisted in the local store."""

    id: int
    github_id: int
    repo_name: str
    repo_full_name: str
    issue_number: int
    title: str
    body: str | None
    state: str
    html_url: str
    created_at: datetime
    updated_at: datetime
    first_seen_at: datetime
    status: IssueStatus
    branch_name: str | None
    task_file_path: str | None

    @property
    def display_ref(self) -> str:
        return f"{self.repo_name}#{self.issue_number}"


@dataclass(slots=True)
class RepositoryRecord:
    """Repository row as persisted in the local store."""

    id: int
    name: str
    full_name: str
    clone_url: str
    local_path: str | None
    last_cloned_at: datetime | None
    last_updated_at: datetime | None


@dataclass(slots=True)
class UpsertResult:
    """Result of persisting one issue sighting."""

    issue_id: int
    is_new: bool


@dataclass(slots=True)
class ScanSummary:
    """Counters for one scan over all target repositories."""

    repos_scanned: int = 0
    issues_found: int = 0
    new_issues: int = 0


@dataclass(slots=True)
class ScanRecord:
    """Persisted scan history entry."""

    scanned_at: datetime
    repos_scanned: int
    issues_found: int
    new_issues: int


@dataclass(slots=True)
class IssueStats:
    """Issue counts grouped by lifecycle status."""

    total_issues: int = 0
    new_issues: int = 0
    ready_issues: int = 0
    in_progress_issues: int = 0
    fixed_issues: int = 0
    pushed_issues: int = 0
    skipped_issues: int = 0
