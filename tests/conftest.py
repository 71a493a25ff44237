"""Shared fixtures: roster documents and in-memory GitHub/Jira servers."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

PEOPLE_YAML = """
- kerberos: alice
  github_handle: alice-gh
  jira_name: alice@example.com
  slack_id: U001
- kerberos: bob
  github_handle: bob-gh
  jira_name: bob@example.com
  slack_id: U002
- kerberos: carol
  github_handle: carol-gh
  jira_name: carol@example.com
  slack_id: U003
"""

TEAM_YAML = """
alice:
  bug_triage: true
bob:
  leave:
    - start: 2026-10-01T00:00:00Z
      end: 2026-10-15T00:00:00Z
"""


def github_issue(
    number: int,
    state: str = "open",
    assignee: str | None = "alice-gh",
    author: str = "bob-gh",
    pull_request: bool = False,
    title: str | None = None,
) -> dict[str, Any]:
    """Build a GitHub REST issue object."""
    node: dict[str, Any] = {
        "number": number,
        "title": title or f"Issue {number}",
        "body_text": f"Body of issue {number}",
        "html_url": f"https://github.com/k-orc/openstack-resource-controller/issues/{number}",
        "state": state,
        "user": {"login": author},
        "assignee": {"login": assignee} if assignee else None,
    }
    if pull_request:
        node["pull_request"] = {"url": f"https://api.github.com/repos/k-orc/openstack-resource-controller/pulls/{number}"}
    return node


class FakeGitHub:
    """Serves a fixed list of issue pages, linked with rel="next"."""

    def __init__(self, pages: list[list[dict[str, Any]]], fail_on_page: int | None = None) -> None:
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params.get("page", "1"))
        if page == self.fail_on_page:
            return httpx.Response(500, text="boom")
        headers = {}
        if page < len(self.pages):
            headers["link"] = (
                f'<https://api.github.com/repositories/1/issues?state=all&page={page + 1}>; rel="next", '
                f'<https://api.github.com/repositories/1/issues?state=all&page={len(self.pages)}>; rel="last"'
            )
        return httpx.Response(200, json=self.pages[page - 1], headers=headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeJira:
    """In-memory Jira with search, create and transitions."""

    def __init__(self, page_size: int = 50, transitions: dict[str, str] | None = None) -> None:
        self.page_size = page_size
        self.tickets: dict[str, dict[str, str]] = {}
        self.transitions = transitions if transitions is not None else {"11": "To Do", "31": "Closed"}
        self.targets = {"To Do": "To Do", "Closed": "Closed"}
        self.created: list[dict[str, Any]] = []
        self.applied: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self._next = 1

    def add_ticket(self, summary: str, status: str = "To Do") -> str:
        key = f"OSASINFRA-{self._next}"
        self._next += 1
        self.tickets[key] = {"summary": summary, "status": status}
        return key

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/rest/api/2/search":
            start_at = int(request.url.params["startAt"])
            max_results = min(int(request.url.params["maxResults"]), self.page_size)
            keys = list(self.tickets)
            page = keys[start_at : start_at + max_results]
            return httpx.Response(
                200,
                json={
                    "startAt": start_at,
                    "maxResults": max_results,
                    "total": len(keys),
                    "issues": [
                        {
                            "key": key,
                            "fields": {
                                "summary": self.tickets[key]["summary"],
                                "status": {"name": self.tickets[key]["status"]},
                            },
                        }
                        for key in page
                    ],
                },
            )

        if request.method == "POST" and path == "/rest/api/2/issue":
            fields = json.loads(request.content)["fields"]
            self.created.append(fields)
            key = self.add_ticket(fields["summary"], "New")
            return httpx.Response(201, json={"id": "1000", "key": key, "self": f"https://jira/rest/api/2/issue/{key}"})

        if path.endswith("/transitions"):
            key = path.split("/")[-2]
            if key not in self.tickets:
                return httpx.Response(404, json={"errorMessages": ["Issue does not exist"]})
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={
                        "transitions": [
                            {"id": tid, "name": name, "to": {"name": self.targets.get(name, name)}}
                            for tid, name in self.transitions.items()
                        ]
                    },
                )
            transition_id = json.loads(request.content)["transition"]["id"]
            if transition_id not in self.transitions:
                return httpx.Response(400, json={"errorMessages": ["Transition id is not valid"]})
            self.applied.append((key, transition_id))
            name = self.transitions[transition_id]
            self.tickets[key]["status"] = self.targets.get(name, name)
            return httpx.Response(204)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def people_yaml() -> str:
    return PEOPLE_YAML


@pytest.fixture
def team_yaml() -> str:
    return TEAM_YAML


@pytest.fixture
def fake_jira() -> FakeJira:
    return FakeJira()
