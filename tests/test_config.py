from __future__ import annotations

from pathlib import Path

import allure
import pytest

from issue_agent.config import (
    ContextSettings,
    ForgeSettings,
    RepositoryTarget,
    ScanSettings,
    Settings,
    TargetSettings,
    parse_repository_target,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]


def _valid_settings(**overrides) -> Settings:
    values = {
        "targets": TargetSettings(organizations=("acme",)),
        "forge": ForgeSettings(token="secret"),
    }
    values.update(overrides)
    return Settings(**values)


def test_from_env_reads_targets_and_paths(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ISSUE_AGENT_ORGANIZATIONS", "acme, tools ,acme")
    monkeypatch.setenv("ISSUE_AGENT_REPOSITORIES", "octo/hello,octo/world")
    monkeypatch.setenv("ISSUE_AGENT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("ISSUE_AGENT_REPOS_DIR", str(tmp_path / "repos"))
    monkeypatch.setenv("GITHUB_TOKEN", "from-github-env")
    monkeypatch.setenv("ISSUE_AGENT_ISSUE_LABELS", "bug,help wanted")
    monkeypatch.setenv("ISSUE_AGENT_NOTIFY_SCAN_COMPLETE", "yes")

    settings = Settings.from_env()

    assert settings.targets.organizations == ("acme", "tools")
    assert settings.targets.repositories == (
        RepositoryTarget(owner="octo", repo="hello"),
        RepositoryTarget(owner="octo", repo="world"),
    )
    assert settings.db_path == tmp_path / "data" / "issue-agent.db"
    assert settings.paths.tasks_dir == tmp_path / "data" / "tasks"
    assert settings.paths.repos_dir == tmp_path / "repos"
    assert settings.forge.token == "from-github-env"
    assert settings.scan.labels == ("bug", "help wanted")
    assert settings.notifications.on_scan_complete is True
    settings.validate()


def test_from_env_prefers_explicit_db_path_and_agent_token(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ISSUE_AGENT_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("GITHUB_TOKEN", "generic")
    monkeypatch.setenv("ISSUE_AGENT_GITHUB_TOKEN", "specific")

    assert Settings.from_env().db_path == tmp_path / "env.db"
    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"
    assert Settings.from_env().forge.token == "specific"


def test_from_env_defaults() -> None:
    settings = Settings.from_env()

    assert settings.scan.interval_minutes == 5
    assert settings.scan.issue_state == "open"
    assert settings.context.max_files == 10
    assert settings.context.max_lines_per_file == 500
    assert settings.notifications.on_new_issue is True
    assert settings.notifications.on_scan_complete is False
    assert settings.forge.api_url == "https://api.github.com"
    assert settings.paths.repos_dir == Path("~/.issue-agent/repos").expanduser()


def test_from_env_rejects_invalid_values(monkeypatch) -> None:
    monkeypatch.setenv("ISSUE_AGENT_SQLITE_BUSY_TIMEOUT_MS", "0")
    with pytest.raises(ValueError, match="ISSUE_AGENT_SQLITE_BUSY_TIMEOUT_MS must be > 0"):
        Settings.from_env()

    monkeypatch.delenv("ISSUE_AGENT_SQLITE_BUSY_TIMEOUT_MS")
    monkeypatch.setenv("ISSUE_AGENT_NOTIFY", "maybe")
    with pytest.raises(ValueError, match="Invalid boolean value for ISSUE_AGENT_NOTIFY"):
        Settings.from_env()

    monkeypatch.delenv("ISSUE_AGENT_NOTIFY")
    monkeypatch.setenv("ISSUE_AGENT_REPOSITORIES", "just-a-name")
    with pytest.raises(ValueError, match="Invalid repository format"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"forge": ForgeSettings(token="")}, "A forge token is required"),
        ({"targets": TargetSettings()}, "No targets configured"),
        ({"scan": ScanSettings(interval_minutes=0)}, "SCAN_INTERVAL_MINUTES must be > 0"),
        ({"scan": ScanSettings(issue_state="merged")}, "Invalid ISSUE_AGENT_ISSUE_STATE"),
        (
            {"forge": ForgeSettings(token="secret", api_url="ftp://example.com")},
            "Invalid ISSUE_AGENT_API_URL",
        ),
        ({"forge": ForgeSettings(token="secret", max_retries=-1)}, "MAX_RETRIES must be >= 0"),
        ({"context": ContextSettings(max_files=0)}, "CONTEXT_MAX_FILES must be > 0"),
        ({"context": ContextSettings(max_lines_per_file=0)}, "CONTEXT_MAX_LINES must be > 0"),
    ],
)
def test_validate_rejects_unusable_settings(overrides, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        _valid_settings(**overrides).validate()


def test_parse_repository_target() -> None:
    assert parse_repository_target(" acme/webapp ") == RepositoryTarget("acme", "webapp")
    for value in ("acme", "acme/", "/webapp", "a/b/c"):
        with pytest.raises(ValueError, match="Invalid repository format"):
            parse_repository_target(value)


def test_ensure_directories_creates_layout(tmp_path: Path) -> None:
    settings = _valid_settings(db_path=tmp_path / "db" / "agent.db")
    settings.paths.repos_dir = tmp_path / "repos"
    settings.paths.data_dir = tmp_path / "data"

    settings.ensure_directories()

    assert (tmp_path / "repos").is_dir()
    assert (tmp_path / "data" / "tasks").is_dir()
    assert (tmp_path / "db").is_dir()
