"""SQLModel ORM tables for issue agent storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class IssueRow(SQLModel, table=True):
    __tablename__ = "issues"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint(
            "repo_full_name",
            "issue_number",
            name="uq_issues_repo_full_name_issue_number",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    github_id: int = Field(unique=True, index=True)
    repo_name: str = Field(index=True)
    repo_full_name: str = Field(index=True)
    issue_number: int
    title: str
    body: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    state: str
    html_url: str
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    first_seen_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    status: str = Field(default="new", index=True)
    branch_name: str | None = None
    task_file_path: str | None = None


class RepositoryRow(SQLModel, table=True):
    __tablename__ = "repositories"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    full_name: str
    clone_url: str
    local_path: str | None = None
    last_cloned_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    last_updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )


class ScanHistoryRow(SQLModel, table=True):
    __tablename__ = "scan_history"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    scanned_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    repos_scanned: int = 0
    issues_found: int = 0
    new_issues: int = 0
