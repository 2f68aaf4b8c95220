"""GitHub REST client with paging, retries and timeout."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import httpx

from issue_agent.forge.models import ForgeComment, ForgeIssue, ForgeRepository, IssueDetails
from issue_agent.storage.common import from_iso

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "issue-agent/0.1"
PAGE_SIZE = 100
RETRYABLE_HTTP_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True)
class ForgeError(Exception):
    """Base forge API error."""

    message: str
    code: str = "forge_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class TemporaryForgeError(ForgeError):
    """Retryable error that persisted through every retry attempt."""

    retry_after: int | None = None


@dataclass(slots=True)
class NonRetryableForgeError(ForgeError):
    """Error that retrying will not fix, for example 401 or 404."""

    status_code: int | None = None


class GitHubClient:
    """Thin GitHub REST wrapper returning normalized forge payloads."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        retry_backoff_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._max_retries = max_retries
        self._retry_backoff_seconds = retry_backoff_seconds
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": DEFAULT_USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers=headers,
            transport=transport,
            follow_redirects=True,
        )

    def list_org_repos(self, org: str) -> list[ForgeRepository]:
        logger.info("Fetching repositories from organization: %s", org)
        repos = [
            _repository(payload, owner=org)
            for payload in self._paginate(
                f"/orgs/{org}/repos",
                params={"type": "all", "per_page": PAGE_SIZE},
            )
        ]
        logger.info("Found %s repositories in %s", len(repos), org)
        return repos

    def get_repo(self, owner: str, repo: str) -> ForgeRepository:
        logger.info("Fetching repository: %s/%s", owner, repo)
        payload = self._request("GET", f"/repos/{owner}/{repo}").json()
        return _repository(payload, owner=owner)

    def list_repo_issues(
        self,
        owner: str,
        repo: str,
        *,
        state: str = "open",
        labels: tuple[str, ...] = (),
    ) -> list[ForgeIssue]:
        """List issues of one repository; pull requests are filtered out."""

        params: dict[str, Any] = {"state": state, "per_page": PAGE_SIZE}
        if labels:
            params["labels"] = ",".join(labels)
        return [
            _issue(payload)
            for payload in self._paginate(f"/repos/{owner}/{repo}/issues", params=params)
            if "pull_request" not in payload
        ]

    def get_issue_details(self, repo_full_name: str, issue_number: int) -> IssueDetails:
        owner, _, repo = repo_full_name.partition("/")
        if not owner or not repo:
            raise ValueError(f"Expected owner/repo, got {repo_full_name!r}")
        issue_payload = self._request("GET", f"/repos/{owner}/{repo}/issues/{issue_number}").json()
        comments = [
            ForgeComment(
                author=(payload.get("user") or {}).get("login") or "unknown",
                body=payload.get("body") or "",
                created_at=from_iso(payload["created_at"]),
            )
            for payload in self._paginate(
                f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
                params={"per_page": PAGE_SIZE},
            )
        ]
        return IssueDetails(issue=_issue(issue_payload), comments=comments)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _paginate(self, path: str, *, params: dict[str, Any]) -> Iterator[dict[str, Any]]:
        response = self._request("GET", path, params=params)
        while True:
            yield from response.json()
            next_link = response.links.get("next", {}).get("url")
            if not next_link:
                return
            response = self._request("GET", next_link)

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        last_error: TemporaryForgeError | None = None
        for attempt in range(self._max_retries + 1):
            if attempt and last_error is not None:
                backoff = self._retry_backoff_seconds * attempt
                if last_error.retry_after is not None:
                    backoff = max(backoff, float(last_error.retry_after))
                logger.warning(
                    "Retrying %s %s in %.1fs after %s (attempt %s/%s)",
                    method,
                    url,
                    backoff,
                    last_error.code,
                    attempt,
                    self._max_retries,
                )
                time.sleep(backoff)
            try:
                response = self._client.request(method, url, params=params)
            except httpx.TimeoutException:
                last_error = TemporaryForgeError(message=f"Timeout calling {url}", code="timeout")
                continue
            except httpx.TransportError as exc:
                last_error = TemporaryForgeError(
                    message=f"Transport error calling {url}: {exc}",
                    code="transport_error",
                )
                continue

            if response.is_success:
                return response
            if response.status_code in RETRYABLE_HTTP_STATUS_CODES:
                last_error = TemporaryForgeError(
                    message=f"Forge API returned HTTP {response.status_code} for {url}",
                    code=str(response.status_code),
                    retry_after=_parse_retry_after(response.headers.get("Retry-After")),
                )
                continue
            raise NonRetryableForgeError(
                message=f"Forge API returned HTTP {response.status_code} for {url}: "
                f"{_error_message(response)}",
                code=str(response.status_code),
                status_code=response.status_code,
            )

        if last_error is None:
            raise RuntimeError("Request loop exited without a response.")
        raise last_error


def _repository(payload: dict[str, Any], *, owner: str) -> ForgeRepository:
    full_name = payload["full_name"]
    return ForgeRepository(
        name=payload["name"],
        full_name=full_name,
        owner=owner,
        clone_url=payload.get("clone_url") or f"https://github.com/{full_name}.git",
        html_url=payload.get("html_url") or f"https://github.com/{full_name}",
        description=payload.get("description"),
        has_issues=bool(payload.get("has_issues", True)),
    )


def _issue(payload: dict[str, Any]) -> ForgeIssue:
    return ForgeIssue(
        id=int(payload["id"]),
        number=int(payload["number"]),
        title=payload["title"],
        body=payload.get("body"),
        state=payload["state"],
        html_url=payload["html_url"],
        created_at=from_iso(payload["created_at"]),
        updated_at=from_iso(payload["updated_at"]),
        labels=tuple(
            label["name"]
            for label in payload.get("labels") or []
            if isinstance(label, dict) and label.get("name")
        ),
    )


def _parse_retry_after(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return max(0, int(value.strip()))
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text[:200]
