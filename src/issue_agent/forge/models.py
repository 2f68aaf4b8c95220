"""Forge-side payloads normalized from REST responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class ForgeRepository:
    """Repository as listed by the forge."""

    name: str
    full_name: str
    owner: str
    clone_url: str
    html_url: str
    description: str | None = None
    has_issues: bool = True


@dataclass(slots=True)
class ForgeIssue:
    """Issue (never a pull request) as listed by the forge."""

    id: int
    number: int
    title: str
    body: str | None
    state: str
    html_url: str
    created_at: datetime
    updated_at: datetime
    labels: tuple[str, ...] = ()


@dataclass(slots=True)
class ForgeComment:
    """One comment in an issue thread."""

    author: str
    body: str
    created_at: datetime


@dataclass(slots=True)
class IssueDetails:
    """Issue with its comment thread, oldest comment first."""

    issue: ForgeIssue
    comments: list[ForgeComment] = field(default_factory=list)
