"""Filter/resolve stage between the GitHub fetcher and the reconciler."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import AsyncIterable, AsyncIterator

from ghira.sync.github_client import GitHubIssue
from ghira.team import Person, resolve_jira_username

logger = logging.getLogger(__name__)


async def assigned_to_team(issues: AsyncIterable[GitHubIssue], members: list[Person]) -> AsyncIterator[GitHubIssue]:
    """Resolve Jira usernames and keep issues assigned to team members.

    The author is resolved when possible but does not affect filtering.
    Issues whose assignee is not on the team are dropped.
    """
    async for issue in issues:
        assignee_jira = resolve_jira_username(members, issue.assignee)
        if assignee_jira is None:
            logger.debug(f"Skipping issue #{issue.number}: assignee {issue.assignee or '(none)'} is not on the team")
            continue
        yield dataclasses.replace(
            issue,
            author_jira=resolve_jira_username(members, issue.author),
            assignee_jira=assignee_jira,
        )
