"""Shared test fixtures."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
import pytest

from issue_agent.config import (
    NotificationSettings,
    PathSettings,
    ScanSettings,
    Settings,
    TargetSettings,
    parse_repository_target,
)
from issue_agent.forge.client import GitHubClient
from issue_agent.models import IssueSighting
from issue_agent.repository import SQLiteRepository

API_URL = "https://api.github.test"

_ENV_PREFIXES = ("ISSUE_AGENT_", "GITHUB_TOKEN")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host configuration out of tests."""

    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[SQLiteRepository]:
    repo = SQLiteRepository(tmp_path / "issues.db")
    repo.init_schema()
    try:
        yield repo
    finally:
        repo.close()


def make_sighting(**overrides: Any) -> IssueSighting:
    values: dict[str, Any] = {
        "github_id": 1001,
        "repo_name": "webapp",
        "repo_full_name": "acme/webapp",
        "issue_number": 42,
        "title": "Login fails on Safari",
        "body": "The `src/auth.ts` handler throws on loginHandler calls.",
        "state": "open",
        "html_url": "https://github.com/acme/webapp/issues/42",
        "created_at": datetime(2026, 10, 1, 9, 0, tzinfo=UTC),
        "updated_at": datetime(2026, 10, 2, 9, 0, tzinfo=UTC),
    }
    values.update(overrides)
    return IssueSighting(**values)


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    settings = Settings(
        db_path=tmp_path / "data" / "issue-agent.db",
        targets=TargetSettings(repositories=(parse_repository_target("acme/webapp"),)),
        scan=ScanSettings(pause_between_repos_seconds=0),
        paths=PathSettings(repos_dir=tmp_path / "repos", data_dir=tmp_path / "data"),
        notifications=NotificationSettings(),
    )
    settings.forge.token = "test-token"
    settings.forge.api_url = API_URL
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


def repo_payload(name: str, *, owner: str = "acme", clone_url: str | None = None, **extra: Any):
    payload = {
        "name": name,
        "full_name": f"{owner}/{name}",
        "clone_url": clone_url or f"https://github.com/{owner}/{name}.git",
        "html_url": f"https://github.com/{owner}/{name}",
        "description": None,
        "has_issues": True,
    }
    payload.update(extra)
    return payload


def issue_payload(number: int, *, repo: str = "acme/webapp", **extra: Any) -> dict[str, Any]:
    payload = {
        "id": 9000 + number,
        "number": number,
        "title": f"Issue {number}",
        "body": None,
        "state": "open",
        "html_url": f"https://github.com/{repo}/issues/{number}",
        "created_at": "2026-10-01T09:00:00Z",
        "updated_at": "2026-10-02T09:00:00Z",
        "labels": [],
    }
    payload.update(extra)
    return payload


Routes = dict[str, Any]


def github_client(
    routes: Routes,
    *,
    requests: list[httpx.Request] | None = None,
    max_retries: int = 0,
) -> GitHubClient:
    """Build a client whose transport answers from ``routes`` keyed by URL path.

    A route value is a JSON payload or a callable taking the request and
    returning an ``httpx.Response``. Unknown paths answer 404.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(route):
            return route(request)
        return httpx.Response(200, content=json.dumps(route).encode(), headers=_JSON)

    return GitHubClient(
        token="test-token",
        api_url=API_URL,
        max_retries=max_retries,
        retry_backoff_seconds=0,
        transport=httpx.MockTransport(_handler),
    )


_JSON = {"Content-Type": "application/json"}


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


@pytest.fixture()
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate git from host configuration and give commits an identity."""

    config = tmp_path / "gitconfig"
    config.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", "Test User")
        monkeypatch.setenv(f"GIT_{role}_EMAIL", "test@example.com")


def run_git(cwd: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return completed.stdout


OriginFactory = Callable[[dict[str, str]], str]


@pytest.fixture()
def origin_factory(tmp_path: Path, git_env: None) -> OriginFactory:
    """Create a bare origin repository holding ``files`` on ``main``; returns its URL."""

    def _create(files: dict[str, str]) -> str:
        source = tmp_path / "origin-src"
        source.mkdir()
        run_git(source, "init", "-q")
        run_git(source, "checkout", "-q", "-b", "main")
        for relative, content in files.items():
            path = source / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        run_git(source, "add", "-A")
        run_git(source, "commit", "-q", "-m", "initial")

        bare = tmp_path / "origin.git"
        run_git(tmp_path, "clone", "-q", "--bare", str(source), str(bare))
        return bare.as_uri()

    return _create
