"""Local working copies managed through the git CLI."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

BRANCH_SLUG_MAX_CHARS = 30
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


class GitCommandError(RuntimeError):
    """A git invocation exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, stderr: str) -> None:
        super().__init__(f"git {' '.join(command)} failed with exit code {returncode}: {stderr}")
        self.returncode = returncode
        self.stderr = stderr


class WorkspaceMissingError(FileNotFoundError):
    """The local working copy for a repository does not exist."""


@dataclass(slots=True)
class WorkspaceStatus:
    """Summary of the working tree state."""

    branch: str
    is_clean: bool
    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


class GitWorkspace:
    """Clones, updates and branches repositories under one root directory."""

    def __init__(self, repos_dir: Path, *, token: str = "") -> None:
        self.repos_dir = repos_dir
        self._token = token

    def path_for(self, repo_name: str) -> Path:
        return self.repos_dir / repo_name

    def is_cloned(self, repo_name: str) -> bool:
        return (self.path_for(repo_name) / ".git").exists()

    def require_path(self, repo_name: str) -> Path:
        path = self.path_for(repo_name)
        if not path.is_dir():
            raise WorkspaceMissingError(f"Repository not cloned: {path}")
        return path

    def clone(self, repo_name: str, clone_url: str) -> Path:
        """Shallow-clone a repository using the token for authentication."""

        local_path = self.path_for(repo_name)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s to %s", repo_name, local_path)
        self._git(
            ["clone", "--depth", "1", self._authenticated_url(clone_url), str(local_path)],
            cwd=local_path.parent,
        )
        logger.info("Successfully cloned %s", repo_name)
        return local_path

    def pull(self, repo_name: str) -> None:
        """Reset the working copy to the latest default branch; failures are only logged."""

        if not self.is_cloned(repo_name):
            raise WorkspaceMissingError(f"Repository {repo_name} is not cloned")
        local_path = self.path_for(repo_name)
        try:
            self._git(["fetch", "origin"], cwd=local_path)
            default_branch = self._default_branch(local_path)
            self._git(["checkout", default_branch], cwd=local_path)
            self._git(["reset", "--hard", f"origin/{default_branch}"], cwd=local_path)
            logger.debug("Updated %s to latest %s", repo_name, default_branch)
        except GitCommandError as error:
            logger.warning("Failed to pull %s: %s", repo_name, error)

    def ensure_cloned(self, repo_name: str, clone_url: str) -> Path:
        if self.is_cloned(repo_name):
            logger.debug("Repository %s already cloned, pulling latest", repo_name)
            self.pull(repo_name)
            return self.path_for(repo_name)
        return self.clone(repo_name, clone_url)

    def create_issue_branch(self, repo_name: str, issue_number: int, title: str) -> str:
        """Create or check out the ``fix/issue-<n>-<slug>`` branch for an issue."""

        if not self.is_cloned(repo_name):
            raise WorkspaceMissingError(f"Repository {repo_name} is not cloned")
        local_path = self.path_for(repo_name)
        branch_name = issue_branch_name(issue_number, title)

        existing = self._git(["branch", "--list", branch_name], cwd=local_path)
        if existing.strip():
            logger.info("Branch %s already exists, checking out", branch_name)
            self._git(["checkout", branch_name], cwd=local_path)
        else:
            self._git(["checkout", "-b", branch_name], cwd=local_path)
            logger.info("Created branch %s", branch_name)
        return branch_name

    def current_branch(self, repo_name: str) -> str:
        output = self._git(
            ["rev-parse", "--abbrev-ref", "HEAD"],
            cwd=self.require_path(repo_name),
        ).strip()
        return output or "unknown"

    def commit_all(self, repo_name: str, message: str) -> str:
        """Stage every change and commit; returns the new commit sha."""

        local_path = self.require_path(repo_name)
        self._git(["add", "-A"], cwd=local_path)
        self._git(["commit", "-m", message], cwd=local_path)
        commit = self._git(["rev-parse", "HEAD"], cwd=local_path).strip()
        logger.info("Committed changes to %s: %s", repo_name, commit)
        return commit

    def push(self, repo_name: str, clone_url: str | None = None) -> str:
        """Push the current branch to origin with upstream tracking."""

        local_path = self.require_path(repo_name)
        branch = self.current_branch(repo_name)
        if clone_url:
            self._git(
                ["remote", "set-url", "origin", self._authenticated_url(clone_url)],
                cwd=local_path,
            )
        logger.info("Pushing %s to origin", branch)
        self._git(["push", "--set-upstream", "origin", branch], cwd=local_path)
        logger.info("Successfully pushed %s", branch)
        return branch

    def diff(self, repo_name: str) -> str:
        local_path = self.require_path(repo_name)
        summary = self._git(["diff", "--stat"], cwd=local_path)
        full = self._git(["diff"], cwd=local_path)
        if not summary.strip() and not full.strip():
            return ""
        return f"{summary}\n\n{full}"

    def status(self, repo_name: str) -> WorkspaceStatus:
        local_path = self.require_path(repo_name)
        porcelain = self._git(["status", "--porcelain"], cwd=local_path)
        status = WorkspaceStatus(
            branch=self.current_branch(repo_name),
            is_clean=not porcelain.strip(),
        )
        for line in porcelain.splitlines():
            if len(line) < 4:
                continue
            code, path = line[:2], line[3:]
            if "D" in code:
                status.deleted.append(path)
            elif "A" in code or code == "??":
                status.added.append(path)
            else:
                status.modified.append(path)
        return status

    def _default_branch(self, local_path: Path) -> str:
        remote_branches = self._git(["branch", "-r"], cwd=local_path)
        for line in remote_branches.splitlines():
            name = line.strip()
            if name in {"origin/main", "origin/master"}:
                return name.removeprefix("origin/")
        return "main"

    def _authenticated_url(self, clone_url: str) -> str:
        if not self._token or not clone_url.startswith("https://"):
            return clone_url
        return clone_url.replace("https://", f"https://{self._token}@", 1)

    def _git(self, args: list[str], *, cwd: Path) -> str:
        completed = subprocess.run(  # noqa: S603
            ["git", *args],  # noqa: S607
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if completed.returncode != 0:
            raise GitCommandError(
                [self._mask(arg) for arg in args],
                completed.returncode,
                self._mask(completed.stderr.strip()),
            )
        return completed.stdout

    def _mask(self, value: str) -> str:
        if not self._token:
            return value
        return value.replace(self._token, "***")


def issue_branch_name(issue_number: int, title: str) -> str:
    slug = _SLUG_SEPARATORS.sub("-", title.lower()).strip("-")
    slug = slug[:BRANCH_SLUG_MAX_CHARS].rstrip("-")
    return f"fix/issue-{issue_number}-{slug}" if slug else f"fix/issue-{issue_number}"
