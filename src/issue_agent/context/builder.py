"""Assemble and persist the task brief for one issue."""

from __future__ import annotations

import logging
from pathlib import Path

from issue_agent.context.brief import (
    BriefComment,
    BriefIssue,
    RelevantFile,
    TaskBrief,
    read_file_content,
    render_task_brief,
)
from issue_agent.context.extraction import ExtractedSignal, issue_text
from issue_agent.context.relevance import find_relevant_files
from issue_agent.forge.client import ForgeError, GitHubClient
from issue_agent.forge.models import IssueDetails
from issue_agent.models import IssueRecord
from issue_agent.repository import SQLiteRepository
from issue_agent.workspace import WorkspaceMissingError

logger = logging.getLogger(__name__)


def task_brief_path(tasks_dir: Path, repo_name: str, issue_number: int) -> Path:
    return tasks_dir / f"{repo_name}-{issue_number}.md"


class TaskBriefBuilder:
    """Turns a stored issue plus its working copy into a ready task brief."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: SQLiteRepository,
        forge: GitHubClient,
        tasks_dir: Path,
        max_files: int = 10,
        max_lines_per_file: int = 500,
    ) -> None:
        self.repository = repository
        self.forge = forge
        self.tasks_dir = tasks_dir
        self.max_files = max_files
        self.max_lines_per_file = max_lines_per_file

    def build(
        self,
        issue_id: int,
        repo_path: Path,
        branch_name: str,
        *,
        mark_ready: bool = True,
    ) -> Path:
        """Write the brief and return its path.

        With ``mark_ready`` the issue also moves to ``ready``; otherwise only the
        brief path is recorded and the status is left alone.
        """

        issue = self.repository.require_issue(issue_id)
        if not repo_path.is_dir():
            raise WorkspaceMissingError(f"Workspace for {issue.display_ref} not found: {repo_path}")

        logger.info("Building context for issue #%s in %s", issue.issue_number, issue.repo_name)
        details = self._fetch_details(issue)
        brief = self.compose(issue, repo_path, branch_name, details)

        self.tasks_dir.mkdir(parents=True, exist_ok=True)
        path = task_brief_path(self.tasks_dir, issue.repo_name, issue.issue_number)
        path.write_text(render_task_brief(brief), encoding="utf-8")
        if mark_ready:
            self.repository.mark_issue_ready(issue.id, path)
        else:
            self.repository.update_issue_task_file(issue.id, path)

        logger.info("Task file created: %s", path)
        return path

    def compose(
        self,
        issue: IssueRecord,
        repo_path: Path,
        branch_name: str,
        details: IssueDetails | None,
    ) -> TaskBrief:
        comments = [
            BriefComment(author=comment.author, body=comment.body, created_at=comment.created_at)
            for comment in (details.comments if details else [])
        ]
        signal = ExtractedSignal.from_text(
            issue_text(issue.title, issue.body, (comment.body for comment in comments)),
        )
        logger.debug(
            "Found %s file references and %s keywords",
            len(signal.file_references),
            len(signal.keywords),
        )

        scored = find_relevant_files(
            repo_path,
            signal.file_references,
            signal.keywords,
            max_files=self.max_files,
        )
        relevant_files = [
            RelevantFile(
                path=candidate.relative_path,
                content=read_file_content(
                    repo_path / candidate.relative_path,
                    max_lines=self.max_lines_per_file,
                ),
                reason=candidate.reason,
            )
            for candidate in scored
        ]

        return TaskBrief(
            issue=BriefIssue(
                number=issue.issue_number,
                title=issue.title,
                body=issue.body,
                html_url=issue.html_url,
                repo_name=issue.repo_name,
                labels=details.issue.labels if details else (),
            ),
            repo_path=repo_path,
            branch_name=branch_name,
            comments=comments,
            relevant_files=relevant_files,
        )

    def _fetch_details(self, issue: IssueRecord) -> IssueDetails | None:
        try:
            return self.forge.get_issue_details(issue.repo_full_name, issue.issue_number)
        except ForgeError as error:
            logger.warning(
                "Failed to get issue details for %s#%s, continuing without comments: %s",
                issue.repo_full_name,
                issue.issue_number,
                error,
            )
            return None
