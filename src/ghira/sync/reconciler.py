"""Reconciliation of GitHub issues against their Jira tickets.

For each GitHub issue the reconciler decides whether a ticket must be
created, closed, reopened or left alone, then performs that action.
Failures are logged per issue and never stop the run.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ghira.sync.index import TicketRecord, summary_prefix
from ghira.sync.jira_client import (
    JiraClient,
    JiraClientError,
    JiraTransitionError,
)

if TYPE_CHECKING:
    from ghira.config import SyncConfig
    from ghira.sync.github_client import GitHubIssue

logger = logging.getLogger(__name__)


class Decision(str, enum.Enum):
    """Action needed to bring a ticket in line with its GitHub issue."""

    CREATE = "create"
    CLOSE = "close"
    REOPEN = "reopen"
    NOOP = "noop"


def decide(issue: GitHubIssue, record: TicketRecord | None, closed_status: str = "Closed") -> Decision:
    """Compare an issue with its ticket, if any."""
    if record is None:
        return Decision.CREATE
    ticket_closed = record.status == closed_status
    if issue.state == "closed" and not ticket_closed:
        return Decision.CLOSE
    if issue.state == "open" and ticket_closed:
        return Decision.REOPEN
    return Decision.NOOP


@dataclass
class ReconcileResult:
    """Result of reconciling one issue."""

    issue_number: int
    decision: Decision
    success: bool
    message: str
    issue_key: str | None = None
    error: str | None = None


@dataclass
class ReconcileStats:
    """Statistics for one reconciliation run."""

    issues_seen: int = 0
    tickets_created: int = 0
    tickets_transitioned: int = 0
    tickets_unchanged: int = 0
    failures: int = 0

    def record(self, result: ReconcileResult) -> None:
        """Count a per-issue result."""
        self.issues_seen += 1
        if not result.success:
            self.failures += 1
        elif result.decision is Decision.CREATE:
            self.tickets_created += 1
        elif result.decision is Decision.NOOP:
            self.tickets_unchanged += 1
        else:
            self.tickets_transitioned += 1


class Reconciler:
    """Applies reconciliation decisions to Jira, one issue at a time.

    Handles:
    - Creating tagged tickets for untracked issues
    - Closing and reopening tickets to follow the issue state
    - Graceful error handling (a failing issue never stops the run)
    """

    def __init__(self, client: JiraClient, config: SyncConfig) -> None:
        """Initialize the reconciler.

        Args:
            client: Jira client, already entered.
            config: Sync configuration (project layout, transition names, dry run).
        """
        self.client = client
        self.config = config

    def ticket_fields(self, issue: GitHubIssue) -> dict[str, Any]:
        """Jira fields of the ticket created for an issue."""
        return {
            "assignee": {"name": issue.assignee_jira},
            "description": f"Originally posted on Github: {issue.url}\n\n{issue.body}",
            "issuetype": {"name": self.config.issue_type},
            "project": {"key": self.config.jira_project},
            "summary": summary_prefix(self.config.issue_tag, issue.number) + issue.title,
            "components": [{"name": self.config.jira_component}],
        }

    async def _transition(self, issue_key: str, transition_name: str) -> None:
        """Look up a transition by exact name and apply it.

        Raises:
            JiraTransitionError: If the workflow offers no such transition.
        """
        transitions = await self.client.get_transitions(issue_key)
        transition_id = next((t.id for t in transitions if t.name == transition_name), "")
        if not transition_id:
            available = [t.name for t in transitions]
            raise JiraTransitionError(f"Transition '{transition_name}' not available for {issue_key}. Available transitions: {available}")
        await self.client.do_transition(issue_key, transition_id)

    async def reconcile_issue(self, issue: GitHubIssue, index: Mapping[int, TicketRecord]) -> ReconcileResult:
        """Reconcile a single issue against the ticket index.

        Args:
            issue: GitHub issue, with its assignee resolved to a Jira username.
            index: Tickets keyed by GitHub issue number.

        Returns:
            Reconcile result.
        """
        record = index.get(issue.number)
        decision = decide(issue, record, self.config.closed_status)
        dry_run = self.config.dry_run

        if record is None:
            fields = self.ticket_fields(issue)
            if dry_run:
                message = f"[DRY RUN] Would create Jira task '{fields['summary']}' for {issue.assignee_jira}"
                logger.info(message)
                return ReconcileResult(issue.number, decision, True, message)
            try:
                created = await self.client.create_issue(fields)
            except JiraClientError as e:
                message = f"Error creating Jira task for issue #{issue.number}: {e}"
                logger.error(message)
                return ReconcileResult(issue.number, decision, False, message, error=str(e))
            message = f"Created Jira task with key: {created.key}"
            logger.info(message)
            return ReconcileResult(issue.number, decision, True, message, issue_key=created.key)

        if decision is Decision.NOOP:
            return ReconcileResult(
                issue_number=issue.number,
                decision=decision,
                success=True,
                message=f"Issue #{issue.number} already in sync with {record.key}",
                issue_key=record.key,
            )

        transition_name = self.config.close_transition if decision is Decision.CLOSE else self.config.reopen_transition

        if dry_run:
            message = f"[DRY RUN] Would transition issue {record.key} to {transition_name}"
            logger.info(message)
            return ReconcileResult(issue.number, decision, True, message, issue_key=record.key)

        try:
            await self._transition(record.key, transition_name)
        except JiraClientError as e:
            message = f"Unable to transition issue {record.key} to {transition_name}: {e}"
            logger.error(message)
            return ReconcileResult(issue.number, decision, False, message, issue_key=record.key, error=str(e))

        message = f"Transitioned issue {record.key} to {transition_name}"
        logger.info(message)
        return ReconcileResult(issue.number, decision, True, message, issue_key=record.key)

    async def run(
        self,
        issues: AsyncIterable[GitHubIssue],
        index: Mapping[int, TicketRecord],
    ) -> ReconcileStats:
        """Reconcile every issue of a stream, sequentially."""
        stats = ReconcileStats()
        async for issue in issues:
            logger.info(f"Now processing Github issue number {issue.number}, assigned to {issue.assignee}, status {issue.state!r}")
            result = await self.reconcile_issue(issue, index)
            stats.record(result)
        return stats
