"""SQLModel-backed storage facade for issue sightings and workspace state."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from sqlalchemy import case, func, or_
from sqlmodel import Session, col, select

from issue_agent.models import (
    IssueRecord,
    IssueSighting,
    IssueStats,
    IssueStatus,
    RepositoryRecord,
    ScanRecord,
    UpsertResult,
)
from issue_agent.storage.alembic_runner import upgrade_head
from issue_agent.storage.common import (
    as_utc,
    build_sqlite_engine,
    connect_sqlite_with_policy,
    utc_now,
)
from issue_agent.storage.sqlmodel_models import IssueRow, RepositoryRow, ScanHistoryRow

logger = logging.getLogger(__name__)


class IssueNotFoundError(LookupError):
    """Raised when an issue record is missing from the local store."""


class SQLiteRepository:
    """Facade that persists issue agent entities using SQLModel and Alembic."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

        # Keep low-level connection for tests and ad-hoc debugging queries.
        self._connection = connect_sqlite_with_policy(
            db_path=db_path,
            busy_timeout_ms=busy_timeout_ms,
        )

    def close(self) -> None:
        self._connection.close()
        self.engine.dispose()

    def init_schema(self) -> None:
        upgrade_head(self.db_path)

    # Issues

    def upsert_issue(self, sighting: IssueSighting) -> UpsertResult:
        """Insert a new sighting or refresh mutable fields of a known issue."""

        with Session(self.engine) as session:
            existing = session.exec(
                select(IssueRow).where(IssueRow.github_id == sighting.github_id),
            ).one_or_none()
            if existing is not None:
                existing.title = sighting.title
                existing.body = sighting.body
                existing.state = sighting.state
                existing.updated_at = sighting.updated_at
                session.add(existing)
                session.commit()
                return UpsertResult(issue_id=_require_id(existing.id), is_new=False)

            row = IssueRow(
                github_id=sighting.github_id,
                repo_name=sighting.repo_name,
                repo_full_name=sighting.repo_full_name,
                issue_number=sighting.issue_number,
                title=sighting.title,
                body=sighting.body,
                state=sighting.state,
                html_url=sighting.html_url,
                created_at=sighting.created_at,
                updated_at=sighting.updated_at,
                first_seen_at=utc_now(),
                status=IssueStatus.NEW.value,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return UpsertResult(issue_id=_require_id(row.id), is_new=True)

    def get_issue(self, issue_id: int) -> IssueRecord | None:
        with Session(self.engine) as session:
            row = session.get(IssueRow, issue_id)
            return _issue_record(row) if row is not None else None

    def require_issue(self, issue_id: int) -> IssueRecord:
        issue = self.get_issue(issue_id)
        if issue is None:
            raise IssueNotFoundError(f"Issue not found in local store: id={issue_id}")
        return issue

    def get_issue_by_number(self, repo_name: str, issue_number: int) -> IssueRecord | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(IssueRow)
                .where(
                    or_(IssueRow.repo_name == repo_name, IssueRow.repo_full_name == repo_name),
                    IssueRow.issue_number == issue_number,
                )
                .order_by(col(IssueRow.id)),
            ).first()
            return _issue_record(row) if row is not None else None

    def list_issues_by_status(
        self,
        statuses: IssueStatus | Iterable[IssueStatus],
    ) -> list[IssueRecord]:
        """Return issues in any of the given statuses, most recently seen first."""

        if isinstance(statuses, IssueStatus):
            statuses = (statuses,)
        values = [status.value for status in statuses]
        with Session(self.engine) as session:
            rows = session.exec(
                select(IssueRow)
                .where(col(IssueRow.status).in_(values))
                .order_by(col(IssueRow.first_seen_at).desc(), col(IssueRow.id).desc()),
            ).all()
            return [_issue_record(row) for row in rows]

    def list_pending_issues(self) -> list[IssueRecord]:
        return self.list_issues_by_status((IssueStatus.NEW, IssueStatus.READY))

    def update_issue_status(self, issue_id: int, status: IssueStatus) -> None:
        with Session(self.engine) as session:
            row = _require_issue_row(session, issue_id)
            row.status = status.value
            session.add(row)
            session.commit()
        logger.debug("Issue id=%s moved to status=%s", issue_id, status.value)

    def update_issue_branch(self, issue_id: int, branch_name: str) -> None:
        with Session(self.engine) as session:
            row = _require_issue_row(session, issue_id)
            row.branch_name = branch_name
            session.add(row)
            session.commit()

    def update_issue_task_file(self, issue_id: int, task_file_path: Path) -> None:
        with Session(self.engine) as session:
            row = _require_issue_row(session, issue_id)
            row.task_file_path = str(task_file_path)
            session.add(row)
            session.commit()

    def mark_issue_ready(self, issue_id: int, task_file_path: Path) -> None:
        """Attach the task brief path and move the issue to ``ready`` in one update."""

        with Session(self.engine) as session:
            row = _require_issue_row(session, issue_id)
            row.task_file_path = str(task_file_path)
            row.status = IssueStatus.READY.value
            session.add(row)
            session.commit()

    def issue_stats(self) -> IssueStats:
        def _count(status: IssueStatus):  # noqa: ANN202
            return func.coalesce(func.sum(case((IssueRow.status == status.value, 1), else_=0)), 0)

        with Session(self.engine) as session:
            row = session.exec(
                select(
                    func.count(col(IssueRow.id)),
                    _count(IssueStatus.NEW),
                    _count(IssueStatus.READY),
                    _count(IssueStatus.IN_PROGRESS),
                    _count(IssueStatus.FIXED),
                    _count(IssueStatus.PUSHED),
                    _count(IssueStatus.SKIPPED),
                ),
            ).one()
        return IssueStats(
            total_issues=int(row[0]),
            new_issues=int(row[1]),
            ready_issues=int(row[2]),
            in_progress_issues=int(row[3]),
            fixed_issues=int(row[4]),
            pushed_issues=int(row[5]),
            skipped_issues=int(row[6]),
        )

    # Repositories

    def upsert_repository(self, *, name: str, full_name: str, clone_url: str) -> int:
        with Session(self.engine) as session:
            row = session.exec(
                select(RepositoryRow).where(RepositoryRow.name == name),
            ).one_or_none()
            if row is None:
                row = RepositoryRow(name=name, full_name=full_name, clone_url=clone_url)
            else:
                row.full_name = full_name
                row.clone_url = clone_url
                row.last_updated_at = utc_now()
            session.add(row)
            session.commit()
            session.refresh(row)
            return _require_id(row.id)

    def get_repository(self, name: str) -> RepositoryRecord | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(RepositoryRow).where(RepositoryRow.name == name),
            ).one_or_none()
            if row is None:
                return None
            return RepositoryRecord(
                id=_require_id(row.id),
                name=row.name,
                full_name=row.full_name,
                clone_url=row.clone_url,
                local_path=row.local_path,
                last_cloned_at=as_utc(row.last_cloned_at) if row.last_cloned_at else None,
                last_updated_at=as_utc(row.last_updated_at) if row.last_updated_at else None,
            )

    def update_repository_local_path(self, name: str, local_path: Path) -> None:
        with Session(self.engine) as session:
            row = session.exec(
                select(RepositoryRow).where(RepositoryRow.name == name),
            ).one_or_none()
            if row is None:
                raise LookupError(f"Repository not found in local store: {name}")
            row.local_path = str(local_path)
            row.last_cloned_at = utc_now()
            session.add(row)
            session.commit()

    # Scan history

    def record_scan(self, *, repos_scanned: int, issues_found: int, new_issues: int) -> None:
        with Session(self.engine) as session:
            session.add(
                ScanHistoryRow(
                    scanned_at=utc_now(),
                    repos_scanned=repos_scanned,
                    issues_found=issues_found,
                    new_issues=new_issues,
                ),
            )
            session.commit()

    def get_last_scan(self) -> ScanRecord | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(ScanHistoryRow).order_by(
                    col(ScanHistoryRow.scanned_at).desc(),
                    col(ScanHistoryRow.id).desc(),
                ),
            ).first()
            if row is None:
                return None
            return ScanRecord(
                scanned_at=as_utc(row.scanned_at),
                repos_scanned=row.repos_scanned,
                issues_found=row.issues_found,
                new_issues=row.new_issues,
            )


def _require_issue_row(session: Session, issue_id: int) -> IssueRow:
    row = session.get(IssueRow, issue_id)
    if row is None:
        raise IssueNotFoundError(f"Issue not found in local store: id={issue_id}")
    return row


def _require_id(value: int | None) -> int:
    if value is None:
        raise RuntimeError("Row has no primary key after commit.")
    return value


def _issue_record(row: IssueRow) -> IssueRecord:
    return IssueRecord(
        id=_require_id(row.id),
        github_id=row.github_id,
        repo_name=row.repo_name,
        repo_full_name=row.repo_full_name,
        issue_number=row.issue_number,
        title=row.title,
        body=row.body,
        state=row.state,
        html_url=row.html_url,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        first_seen_at=as_utc(row.first_seen_at),
        status=IssueStatus(row.status),
        branch_name=row.branch_name,
        task_file_path=row.task_file_path,
    )
