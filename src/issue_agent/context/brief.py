"""Markdown task brief rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

DEFAULT_MAX_LINES = 500
CLI_NAME = "issue-agent"


@dataclass(slots=True)
class BriefIssue:
    """Issue metadata shown in the brief header."""

    number: int
    title: str
    body: str | None
    html_url: str
    repo_name: str
    labels: tuple[str, ...] = ()


@dataclass(slots=True)
class BriefComment:
    author: str
    body: str
    created_at: datetime


@dataclass(slots=True)
class RelevantFile:
    path: str
    content: str
    reason: str


@dataclass(slots=True)
class TaskBrief:
    """Everything rendered into one task brief document."""

    issue: BriefIssue
    repo_path: Path
    branch_name: str
    comments: list[BriefComment] = field(default_factory=list)
    relevant_files: list[RelevantFile] = field(default_factory=list)


def read_file_content(path: Path, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """Read a file capped to ``max_lines``; failures become an inline marker."""

    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as error:
        return f"[Error reading file: {error}]"

    lines = content.split("\n")
    if len(lines) > max_lines:
        remaining = len(lines) - max_lines
        return "\n".join(lines[:max_lines]) + f"\n\n... (truncated, {remaining} more lines)"
    return content


def render_task_brief(brief: TaskBrief) -> str:
    issue = brief.issue
    lines = [
        f"# Issue #{issue.number}: {issue.title}",
        "",
        f"**Repository:** {issue.repo_name}",
        f"**Branch:** `{brief.branch_name}`",
        f"**URL:** {issue.html_url}",
        f"**Local Path:** `{brief.repo_path}`",
    ]
    if issue.labels:
        lines.append(f"**Labels:** {', '.join(issue.labels)}")

    lines.extend(["", "---", "", "## Issue Description", ""])
    lines.append(issue.body or "*No description provided*")
    lines.append("")

    if brief.comments:
        lines.extend(["## Comments", ""])
        for comment in brief.comments:
            lines.append(f"### @{comment.author} ({comment.created_at:%Y-%m-%d})")
            lines.append("")
            lines.append(comment.body)
            lines.append("")

    lines.extend(["---", "", "## Relevant Files", ""])
    if not brief.relevant_files:
        lines.append(
            "*No relevant files automatically identified. "
            "You may need to explore the repository.*",
        )
    for relevant in brief.relevant_files:
        lines.extend(
            [
                f"### `{relevant.path}`",
                f"*{relevant.reason}*",
                "",
                "```",
                relevant.content,
                "```",
                "",
            ],
        )

    lines.extend(
        [
            "---",
            "",
            "## How to Fix",
            "",
            "1. Open this repository in your editor:",
            "   ```bash",
            f"   {CLI_NAME} open {issue.repo_name}#{issue.number}",
            "   ```",
            "",
            f"2. The branch has already been created: `{brief.branch_name}`",
            "",
            "3. Fix the issue described above",
            "",
            "4. After fixing, push your changes:",
            "   ```bash",
            f"   {CLI_NAME} push {issue.repo_name}#{issue.number}",
            "   ```",
            "",
        ],
    )
    return "\n".join(lines)
