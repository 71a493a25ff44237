"""GitHub API client using httpx for reading a repository's issues.

This module provides an async HTTP client that walks the paginated issue
list of one repository, following the ``link`` response header, and yields
the issues (pull requests excluded) as they arrive.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0

LINK_NEXT_PATTERN = re.compile(r'<(\S+)>; rel="next"')


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""


@dataclass(frozen=True)
class GitHubIssue:
    """Represents a GitHub issue."""

    number: int
    title: str
    state: str  # "open" or "closed"
    body: str = ""
    url: str = ""
    author: str = ""  # GitHub login, empty when unknown
    assignee: str = ""  # GitHub login, empty when unassigned
    author_jira: str | None = None  # Resolved Jira username
    assignee_jira: str | None = None  # Resolved Jira username
    is_pull_request: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> GitHubIssue:
        """Build an issue from a REST API issue object."""
        author = data.get("user") or {}
        assignee = data.get("assignee") or {}
        body = data.get("body_text")
        if body is None:
            body = data.get("body")
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            state=data.get("state", "open"),
            body=body or "",
            url=data.get("html_url", ""),
            author=author.get("login", ""),
            assignee=assignee.get("login", ""),
            is_pull_request=data.get("pull_request") is not None,
        )


def parse_next_link(link_header: str | None) -> str | None:
    """Extract the ``rel="next"`` URL from a link header."""
    if not link_header:
        return None
    match = LINK_NEXT_PATTERN.search(link_header)
    return match.group(1) if match else None


class GitHubClient:
    """Async GitHub API client for listing repository issues.

    Sends the token as a bearer token when one is given. Errors are not
    retried: any transport failure, unexpected status or undecodable page
    raises GitHubClientError.
    """

    def __init__(
        self,
        repo: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            repo: Repository in 'owner/repo' format.
            token: GitHub token. Requests are anonymous when None.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.repo = repo
        self.timeout = timeout
        self._token = token
        self._transport = transport

        # Build headers - never log the token!
        self._headers: dict[str, str] = {}
        if self._token:
            self._headers = {
                "Authorization": f"Bearer {self._token}",
                "X-GitHub-Api-Version": "2022-11-28",
                # Plain text bodies, the Markdown source is not needed
                "Accept": "application/vnd.github.text+json",
            }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GitHubClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=GITHUB_API_BASE,
            headers=self._headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("GitHubClient must be used as async context manager")
        return self._client

    async def _get_page(self, url: str, params: dict[str, str] | None = None) -> tuple[list[dict[str, Any]], str | None]:
        """Fetch one page of issues.

        Returns:
            The decoded issue objects and the URL of the next page, if any.

        Raises:
            GitHubClientError: On transport, status or decoding errors.
        """
        try:
            response = await self.client.get(url, params=params)
        except httpx.HTTPError as e:
            raise GitHubClientError(f"error fetching issues: {e}") from e

        if response.status_code != 200:
            raise GitHubClientError(f"Status code {response.status_code} from Github: {response.text[:200]}")

        try:
            batch = response.json()
        except ValueError as e:
            raise GitHubClientError(f"error decoding Github issues: {e}") from e
        if not isinstance(batch, list):
            raise GitHubClientError(f"error decoding Github issues: expected a list, got {type(batch).__name__}")

        return batch, parse_next_link(response.headers.get("link"))

    async def iter_issues(self) -> AsyncIterator[GitHubIssue]:
        """Yield every issue of the repository, in any state.

        Pull requests share the issues endpoint and are skipped here.

        Raises:
            GitHubClientError: If a page cannot be fetched or decoded.
        """
        # https://docs.github.com/en/rest/issues/issues#list-repository-issues
        url: str | None = f"/repos/{self.repo}/issues"
        params: dict[str, str] | None = {"state": "all"}
        pages = 0
        total = 0

        while url:
            batch, url = await self._get_page(url, params)
            # The next link already carries the query string
            params = None
            pages += 1
            for node in batch:
                try:
                    issue = GitHubIssue.from_api(node)
                except (KeyError, TypeError, AttributeError) as e:
                    raise GitHubClientError(f"error decoding Github issues: {e}") from e
                if issue.is_pull_request:
                    continue
                total += 1
                yield issue

        logger.info(f"Fetched {total} issues from {self.repo} in {pages} page(s)")
