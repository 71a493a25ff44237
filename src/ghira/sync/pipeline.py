"""Wiring of one sync run: fetch, filter, index and reconcile."""

from __future__ import annotations

import logging

import httpx

from ghira.config import Credentials, SyncConfig
from ghira.sync.filters import assigned_to_team
from ghira.sync.github_client import GitHubClient, GitHubClientError
from ghira.sync.index import build_index
from ghira.sync.jira_client import JiraClient, JiraClientError
from ghira.sync.reconciler import Reconciler, ReconcileStats
from ghira.sync.stream import produce
from ghira.team import Person, load_people, team_members

logger = logging.getLogger(__name__)

STREAM_ERRORS = (GitHubClientError, JiraClientError, httpx.HTTPError)


async def reconcile(
    github: GitHubClient,
    jira: JiraClient,
    members: list[Person],
    config: SyncConfig,
) -> ReconcileStats:
    """Run the pipeline with already-entered clients.

    The GitHub fetch, the team filter and the Jira search run as concurrent
    producers. The ticket index is complete before the first issue is
    reconciled.
    """
    issues = produce(github.iter_issues(), name="github issues", errors=STREAM_ERRORS)
    assigned = produce(assigned_to_team(issues, members), name="team issues", errors=STREAM_ERRORS)
    tickets = produce(jira.search(config.jql), name="jira search", errors=STREAM_ERRORS)

    try:
        index = await build_index(tickets, config.issue_tag)
        if tickets.error is not None:
            logger.warning(f"Jira search incomplete, {len(index)} ticket(s) indexed")
        stats = await Reconciler(jira, config).run(assigned, index)
    finally:
        for stream in (tickets, assigned, issues):
            await stream.aclose()

    logger.info(
        f"Sync complete: {stats.issues_seen} issue(s), {stats.tickets_created} created, "
        f"{stats.tickets_transitioned} transitioned, {stats.tickets_unchanged} unchanged, {stats.failures} failed"
    )
    return stats


async def run_sync(config: SyncConfig, credentials: Credentials) -> ReconcileStats:
    """Synchronize Jira with GitHub once.

    Raises:
        RosterError: If the roster cannot be decoded.
    """
    members = team_members(load_people(credentials.people, credentials.team))
    logger.info(f"Loaded {len(members)} team member(s)")

    github = GitHubClient(config.github_repo, token=credentials.github_token, timeout=config.timeout)
    jira = JiraClient(
        config.jira_url,
        token=credentials.jira_token,
        page_size=config.page_size,
        max_throttle_retries=config.max_throttle_retries,
        timeout=config.timeout,
    )
    async with github, jira:
        return await reconcile(github, jira, members, config)
