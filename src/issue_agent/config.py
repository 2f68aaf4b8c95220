"""Runtime configuration for scanning, workspaces and task brief generation."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

ISSUE_STATES = frozenset({"open", "closed", "all"})
DEFAULT_HOME_DIR = Path("~/.issue-agent")


@dataclass(slots=True, frozen=True)
class RepositoryTarget:
    """Individually monitored repository in ``owner/repo`` form."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(slots=True)
class TargetSettings:
    """Organizations and repositories to monitor."""

    organizations: tuple[str, ...] = ()
    repositories: tuple[RepositoryTarget, ...] = ()


@dataclass(slots=True)
class ScanSettings:
    """Polling cadence and issue filters."""

    interval_minutes: int = 5
    issue_state: str = "open"
    labels: tuple[str, ...] = ()
    pause_between_repos_seconds: float = 0.1


@dataclass(slots=True)
class ForgeSettings:
    """Forge API access settings."""

    api_url: str = "https://api.github.com"
    token: str = ""
    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_backoff_seconds: float = 1.0


@dataclass(slots=True)
class PathSettings:
    """Filesystem locations for working copies and agent data."""

    repos_dir: Path = DEFAULT_HOME_DIR / "repos"
    data_dir: Path = DEFAULT_HOME_DIR / "data"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "issue-agent.db"

    @property
    def tasks_dir(self) -> Path:
        return self.data_dir / "tasks"


@dataclass(slots=True)
class NotificationSettings:
    """Which events reach the notification sink."""

    enabled: bool = True
    on_new_issue: bool = True
    on_scan_complete: bool = False
    on_error: bool = True


@dataclass(slots=True)
class ContextSettings:
    """Limits applied while building task briefs."""

    max_files: int = 10
    max_lines_per_file: int = 500


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".issue_agent.db")
    targets: TargetSettings = field(default_factory=TargetSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)
    forge: ForgeSettings = field(default_factory=ForgeSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    context: ContextSettings = field(default_factory=ContextSettings)
    editor: str = "code"
    sqlite_busy_timeout_ms: int = 5_000

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults under ``~/.issue-agent``."""

        paths = PathSettings(
            repos_dir=_env_path("ISSUE_AGENT_REPOS_DIR", DEFAULT_HOME_DIR / "repos"),
            data_dir=_env_path("ISSUE_AGENT_DATA_DIR", DEFAULT_HOME_DIR / "data"),
        )
        env_db_path = os.getenv("ISSUE_AGENT_DB_PATH", "").strip()
        sqlite_busy_timeout_ms = int(os.getenv("ISSUE_AGENT_SQLITE_BUSY_TIMEOUT_MS", "5000"))
        if sqlite_busy_timeout_ms <= 0:
            raise ValueError("ISSUE_AGENT_SQLITE_BUSY_TIMEOUT_MS must be > 0.")

        return cls(
            db_path=db_path or (Path(env_db_path).expanduser() if env_db_path else paths.db_path),
            targets=TargetSettings(
                organizations=_env_csv("ISSUE_AGENT_ORGANIZATIONS"),
                repositories=tuple(
                    parse_repository_target(value)
                    for value in _env_csv("ISSUE_AGENT_REPOSITORIES")
                ),
            ),
            scan=ScanSettings(
                interval_minutes=int(os.getenv("ISSUE_AGENT_SCAN_INTERVAL_MINUTES", "5")),
                issue_state=os.getenv("ISSUE_AGENT_ISSUE_STATE", "open").strip().lower(),
                labels=_env_csv("ISSUE_AGENT_ISSUE_LABELS"),
                pause_between_repos_seconds=float(
                    os.getenv("ISSUE_AGENT_PAUSE_BETWEEN_REPOS_SECONDS", "0.1"),
                ),
            ),
            forge=ForgeSettings(
                api_url=os.getenv("ISSUE_AGENT_API_URL", "https://api.github.com").rstrip("/"),
                token=os.getenv("ISSUE_AGENT_GITHUB_TOKEN", os.getenv("GITHUB_TOKEN", "")).strip(),
                request_timeout_seconds=float(
                    os.getenv("ISSUE_AGENT_REQUEST_TIMEOUT_SECONDS", "30.0"),
                ),
                max_retries=int(os.getenv("ISSUE_AGENT_MAX_RETRIES", "3")),
                retry_backoff_seconds=float(
                    os.getenv("ISSUE_AGENT_RETRY_BACKOFF_SECONDS", "1.0"),
                ),
            ),
            paths=paths,
            notifications=NotificationSettings(
                enabled=_env_bool("ISSUE_AGENT_NOTIFY", default=True),
                on_new_issue=_env_bool("ISSUE_AGENT_NOTIFY_NEW_ISSUE", default=True),
                on_scan_complete=_env_bool("ISSUE_AGENT_NOTIFY_SCAN_COMPLETE", default=False),
                on_error=_env_bool("ISSUE_AGENT_NOTIFY_ERROR", default=True),
            ),
            context=ContextSettings(
                max_files=int(os.getenv("ISSUE_AGENT_CONTEXT_MAX_FILES", "10")),
                max_lines_per_file=int(os.getenv("ISSUE_AGENT_CONTEXT_MAX_LINES", "500")),
            ),
            editor=os.getenv("ISSUE_AGENT_EDITOR", "code").strip(),
            sqlite_busy_timeout_ms=sqlite_busy_timeout_ms,
        )

    def validate(self) -> None:
        """Raise configuration error if scanning cannot run with these settings."""

        if not self.forge.token:
            raise ValueError(
                "A forge token is required. Set GITHUB_TOKEN or ISSUE_AGENT_GITHUB_TOKEN.",
            )
        if not self.targets.organizations and not self.targets.repositories:
            raise ValueError(
                "No targets configured. "
                "Set ISSUE_AGENT_ORGANIZATIONS and/or ISSUE_AGENT_REPOSITORIES (owner/repo).",
            )
        if self.scan.interval_minutes <= 0:
            raise ValueError("ISSUE_AGENT_SCAN_INTERVAL_MINUTES must be > 0.")
        if self.scan.issue_state not in ISSUE_STATES:
            raise ValueError(
                f"Invalid ISSUE_AGENT_ISSUE_STATE: {self.scan.issue_state!r} "
                "(expected open, closed or all).",
            )
        if self.scan.pause_between_repos_seconds < 0:
            raise ValueError("ISSUE_AGENT_PAUSE_BETWEEN_REPOS_SECONDS must be >= 0.")
        parsed = urlparse(self.forge.api_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                f"Invalid ISSUE_AGENT_API_URL: {self.forge.api_url!r}. "
                "Expected an absolute URL with http:// or https:// scheme.",
            )
        if self.forge.max_retries < 0:
            raise ValueError("ISSUE_AGENT_MAX_RETRIES must be >= 0.")
        if self.context.max_files <= 0:
            raise ValueError("ISSUE_AGENT_CONTEXT_MAX_FILES must be > 0.")
        if self.context.max_lines_per_file <= 0:
            raise ValueError("ISSUE_AGENT_CONTEXT_MAX_LINES must be > 0.")

    def ensure_directories(self) -> None:
        """Create working copy, data and task brief directories if missing."""

        for directory in (
            self.paths.repos_dir,
            self.paths.data_dir,
            self.paths.tasks_dir,
            self.db_path.parent,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def target_summary(self) -> list[str]:
        lines: list[str] = []
        if self.targets.organizations:
            lines.append(f"Organizations: {', '.join(self.targets.organizations)}")
        if self.targets.repositories:
            repos = ", ".join(target.full_name for target in self.targets.repositories)
            lines.append(f"Repositories: {repos}")
        return lines


def parse_repository_target(value: str) -> RepositoryTarget:
    """Parse ``owner/repo`` into a repository target."""

    parts = value.strip().split("/")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise ValueError(f"Invalid repository format: {value!r}. Expected: owner/repo")
    return RepositoryTarget(owner=parts[0].strip(), repo=parts[1].strip())


def _env_csv(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(dict.fromkeys(part.strip() for part in raw.split(",") if part.strip()))


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name, "").strip()
    return (Path(value) if value else default).expanduser()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
