"""Discover target repositories and record their issues."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from issue_agent.config import ScanSettings, TargetSettings
from issue_agent.forge.client import ForgeError, GitHubClient
from issue_agent.forge.models import ForgeRepository
from issue_agent.models import IssueSighting, ScanSummary
from issue_agent.repository import SQLiteRepository

logger = logging.getLogger(__name__)


class IssueScanner:
    """Runs one scan over every configured organization and repository."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        targets: TargetSettings,
        scan_settings: ScanSettings,
        forge: GitHubClient,
        repository: SQLiteRepository,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.targets = targets
        self.scan_settings = scan_settings
        self.forge = forge
        self.repository = repository
        self._sleep = sleep

    def resolve_target_repos(self) -> list[ForgeRepository]:
        """Expand organizations and add individual repos not already covered."""

        repos: list[ForgeRepository] = []
        for org in self.targets.organizations:
            try:
                org_repos = self.forge.list_org_repos(org)
            except ForgeError as error:
                logger.error("Failed to fetch org %s, skipping: %s", org, error)
                continue
            for repo in org_repos:
                self._remember(repo)
            repos.extend(org_repos)

        known = {repo.full_name for repo in repos}
        for target in self.targets.repositories:
            try:
                repo = self.forge.get_repo(target.owner, target.repo)
            except ForgeError as error:
                logger.error("Failed to fetch repo %s, skipping: %s", target.full_name, error)
                continue
            self._remember(repo)
            if repo.full_name not in known:
                known.add(repo.full_name)
                repos.append(repo)

        logger.info("Total repositories to monitor: %s", len(repos))
        return repos

    def scan(self) -> ScanSummary:
        logger.info("Starting full repository scan")
        repos = [repo for repo in self.resolve_target_repos() if repo.has_issues]
        logger.info("Scanning %s repositories with issues enabled", len(repos))

        summary = ScanSummary(repos_scanned=len(repos))
        for index, repo in enumerate(repos):
            if index and self.scan_settings.pause_between_repos_seconds > 0:
                self._sleep(self.scan_settings.pause_between_repos_seconds)
            logger.debug("Scanning %s for issues", repo.full_name)
            try:
                issues = self.forge.list_repo_issues(
                    repo.owner,
                    repo.name,
                    state=self.scan_settings.issue_state,
                    labels=self.scan_settings.labels,
                )
            except ForgeError as error:
                logger.warning("Failed to fetch issues for %s: %s", repo.full_name, error)
                continue

            summary.issues_found += len(issues)
            for issue in issues:
                result = self.repository.upsert_issue(
                    IssueSighting(
                        github_id=issue.id,
                        repo_name=repo.name,
                        repo_full_name=repo.full_name,
                        issue_number=issue.number,
                        title=issue.title,
                        body=issue.body,
                        state=issue.state,
                        html_url=issue.html_url,
                        created_at=issue.created_at,
                        updated_at=issue.updated_at,
                    ),
                )
                if result.is_new:
                    summary.new_issues += 1
                    logger.info(
                        "New issue found: %s#%s - %s",
                        repo.full_name,
                        issue.number,
                        issue.title,
                    )

        self.repository.record_scan(
            repos_scanned=summary.repos_scanned,
            issues_found=summary.issues_found,
            new_issues=summary.new_issues,
        )
        logger.info(
            "Scan complete: %s repos, %s issues, %s new",
            summary.repos_scanned,
            summary.issues_found,
            summary.new_issues,
        )
        return summary

    def _remember(self, repo: ForgeRepository) -> None:
        known = self.repository.get_repository(repo.name)
        if known is not None and known.full_name != repo.full_name:
            logger.warning(
                "Repository name %s is shared by %s and %s; its working copy now follows %s",
                repo.name,
                known.full_name,
                repo.full_name,
                repo.full_name,
            )
        self.repository.upsert_repository(
            name=repo.name,
            full_name=repo.full_name,
            clone_url=repo.clone_url,
        )
