"""Jira REST API v2 client for ticket synchronization.

This module provides an async HTTP client for Jira API operations
including paginated search, ticket creation, transition discovery and
workflow transitions. Throttled requests (HTTP 429) are retried after the
delay advertised in the Retry-After header.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Jira API constants
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 100
DEFAULT_RETRY_AFTER = 1.0  # seconds

SUCCESS_STATUSES = frozenset({200, 201, 202, 204})
SEARCH_STATUSES = frozenset({200, 202, 204})


class JiraClientError(Exception):
    """Base exception for Jira client errors."""


class JiraAuthError(JiraClientError):
    """Authentication with Jira failed."""


class JiraRateLimitError(JiraClientError):
    """Jira API kept throttling beyond the configured retry cap."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after  # Seconds requested by the last 429


class JiraNotFoundError(JiraClientError):
    """Requested resource not found."""


class JiraTransitionError(JiraClientError):
    """Transition failed or is not available."""


@dataclass(frozen=True)
class JiraIssue:
    """Represents a Jira issue."""

    key: str  # e.g., "PROJ-123"
    summary: str = ""
    status: str = ""  # Current status name
    url: str = ""


@dataclass(frozen=True)
class JiraTransition:
    """Represents an available Jira workflow transition."""

    id: str  # Transition ID (used for API calls)
    name: str  # Transition name (user-facing)
    to_status: str = ""  # Target status name after transition


def parse_retry_after(value: str | None) -> float:
    """Seconds to wait before retrying a throttled request."""
    if not value:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = float(value)
    except ValueError:
        return DEFAULT_RETRY_AFTER
    if seconds < 0 or seconds != seconds:  # negative or NaN
        return DEFAULT_RETRY_AFTER
    return seconds


class JiraClient:
    """Async Jira REST API v2 client.

    Authenticates with a bearer (personal access) token. Every request goes
    through :meth:`_request`, which waits and retries while Jira answers
    429. With ``max_throttle_retries=None`` it retries until the request is
    accepted; the wait is an ``asyncio.sleep``, so cancelling the calling
    task stops it.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_throttle_retries: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Jira client.

        Args:
            base_url: Jira instance URL (e.g., https://issues.example.com).
            token: Personal access token.
            page_size: Number of issues requested per search page.
            max_throttle_retries: Retry cap for throttled requests, None for no cap.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        # Normalize base URL (remove trailing slash)
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.max_throttle_retries = max_throttle_retries
        self.timeout = timeout
        self._transport = transport

        # never log the token!
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> JiraClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("JiraClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        expected: frozenset[int] = SUCCESS_STATUSES,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make an HTTP request, retrying while throttled.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: API endpoint (e.g., "/rest/api/2/issue/PROJ-123").
            expected: Status codes accepted as success.
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object.

        Raises:
            JiraAuthError: If authentication fails.
            JiraRateLimitError: If throttling outlasts max_throttle_retries.
            JiraNotFoundError: If resource is not found.
            JiraClientError: For transport failures and other API errors.
        """
        attempt = 0

        while True:
            try:
                response = await self.client.request(method, endpoint, **kwargs)
            except httpx.HTTPError as e:
                raise JiraClientError(f"HTTP error on {method} {endpoint}: {e}") from e

            if response.status_code != 429:
                break

            wait_time = parse_retry_after(response.headers.get("Retry-After"))
            if self.max_throttle_retries is not None and attempt >= self.max_throttle_retries:
                raise JiraRateLimitError(
                    f"Jira API rate limit exceeded after {attempt} retries. Retry after {wait_time}s",
                    retry_after=wait_time,
                )
            attempt += 1
            logger.warning(f"Throttled by Jira: waiting {wait_time}s (retry {attempt})")
            await asyncio.sleep(wait_time)

        if response.status_code in expected:
            return response

        # Handle auth errors (401, 403)
        if response.status_code == 401:
            raise JiraAuthError("Jira authentication failed. Check your API token.")
        if response.status_code == 403:
            raise JiraAuthError("Jira access forbidden. Check token permissions.")

        # Handle not found (404)
        if response.status_code == 404:
            raise JiraNotFoundError(f"Resource not found: {endpoint}")

        error_body = response.text
        logger.debug(f"Jira API error {response.status_code}: {error_body}")
        raise JiraClientError(f"Jira API error {response.status_code}: {error_body[:200]}")

    def _issue_from_node(self, node: dict[str, Any]) -> JiraIssue:
        fields = node.get("fields") or {}
        status = fields.get("status") or {}
        return JiraIssue(
            key=node["key"],
            summary=fields.get("summary") or "",
            status=status.get("name", ""),
            url=f"{self.base_url}/browse/{node['key']}",
        )

    # =========================================================================
    # Search
    # =========================================================================

    async def search(self, jql: str) -> AsyncIterator[JiraIssue]:
        """Yield every issue matching a JQL query, page by page.

        Raises:
            JiraClientError: On a status outside 200/202/204 or an undecodable page.
        """
        start_at, total = 0, 1
        while start_at < total:
            response = await self._request(
                "GET",
                "/rest/api/2/search",
                expected=SEARCH_STATUSES,
                params={
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": self.page_size,
                    "fields": "summary,status",
                },
            )
            try:
                # 202 and 204 may come without a body
                data = response.json() if response.content or response.status_code == 200 else {}
                nodes = data.get("issues") or []
                issues = [self._issue_from_node(node) for node in nodes]
                start_at = int(data.get("startAt", start_at)) + len(issues)
                total = int(data.get("total", 0))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise JiraClientError(f"error decoding Jira search results: {e}") from e

            logger.info(f"Incoming batch of {len(issues)} issues")

            for issue in issues:
                yield issue

            if not issues and start_at < total:
                logger.warning(f"Jira returned an empty page at {start_at} of {total}; stopping search")
                break

    # =========================================================================
    # Issue Operations
    # =========================================================================

    async def create_issue(self, fields: dict[str, Any]) -> JiraIssue:
        """Create an issue.

        Args:
            fields: The Jira ``fields`` object of the new issue.

        Returns:
            JiraIssue for the created issue.
        """
        response = await self._request("POST", "/rest/api/2/issue", json={"fields": fields})
        try:
            key = response.json()["key"]
        except (ValueError, KeyError, TypeError) as e:
            raise JiraClientError(f"error decoding created issue: {e}") from e
        return JiraIssue(
            key=key,
            summary=fields.get("summary", ""),
            url=f"{self.base_url}/browse/{key}",
        )

    # =========================================================================
    # Transition Operations
    # =========================================================================

    async def get_transitions(self, issue_key: str) -> list[JiraTransition]:
        """Get available transitions for an issue.

        Args:
            issue_key: The issue key (e.g., "PROJ-123").

        Returns:
            List of available JiraTransition objects.
        """
        endpoint = f"/rest/api/2/issue/{issue_key}/transitions"
        response = await self._request("GET", endpoint)
        try:
            data = response.json()
            return [
                JiraTransition(
                    id=str(t["id"]),
                    name=t["name"],
                    to_status=(t.get("to") or {}).get("name", ""),
                )
                for t in data.get("transitions", [])
            ]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise JiraClientError(f"error decoding transitions of {issue_key}: {e}") from e

    async def do_transition(self, issue_key: str, transition_id: str) -> None:
        """Apply a workflow transition to an issue.

        Raises:
            JiraTransitionError: If Jira rejects the transition.
        """
        endpoint = f"/rest/api/2/issue/{issue_key}/transitions"
        try:
            await self._request("POST", endpoint, json={"transition": {"id": transition_id}})
        except (JiraAuthError, JiraRateLimitError):
            raise
        except JiraClientError as e:
            raise JiraTransitionError(f"Transition {transition_id!r} failed for {issue_key}: {e}") from e
