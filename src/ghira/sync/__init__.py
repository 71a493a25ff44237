"""GitHub to Jira issue synchronization."""

from ghira.sync.github_client import GitHubClient, GitHubClientError, GitHubIssue
from ghira.sync.index import TicketRecord, build_index
from ghira.sync.jira_client import JiraClient, JiraClientError, JiraRateLimitError, JiraTransitionError
from ghira.sync.pipeline import run_sync
from ghira.sync.reconciler import Decision, Reconciler, ReconcileStats

__all__ = [
    "Decision",
    "GitHubClient",
    "GitHubClientError",
    "GitHubIssue",
    "JiraClient",
    "JiraClientError",
    "JiraRateLimitError",
    "JiraTransitionError",
    "ReconcileStats",
    "Reconciler",
    "TicketRecord",
    "build_index",
    "run_sync",
]
