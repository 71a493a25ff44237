"""Index of the Jira tickets already created for GitHub issues.

Tickets carry their GitHub issue number in the summary, as a tag of the
form ``GH-<repo tag>-<number>: ``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterable
from dataclasses import dataclass

from ghira.sync.jira_client import JiraIssue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketRecord:
    """Jira ticket tracking one GitHub issue."""

    key: str
    status: str


def summary_prefix(tag: str, number: int) -> str:
    """Tag placed at the start of a ticket summary."""
    return f"GH-{tag}-{number}: "


def issue_tag_pattern(tag: str) -> re.Pattern[str]:
    """Pattern extracting the GitHub issue number from a ticket summary."""
    return re.compile(rf"GH-{re.escape(tag)}-([0-9]+): ")


def issue_number_from_summary(pattern: re.Pattern[str], summary: str) -> int | None:
    """Return the tagged GitHub issue number, or None for foreign tickets."""
    match = pattern.search(summary)
    if match is None:
        return None
    return int(match.group(1))


async def build_index(tickets: AsyncIterable[JiraIssue], tag: str) -> dict[int, TicketRecord]:
    """Drain a ticket stream into a mapping of issue number to ticket.

    Tickets without the tag are skipped. When two tickets carry the same
    number, the later one in search order wins.
    """
    pattern = issue_tag_pattern(tag)
    index: dict[int, TicketRecord] = {}

    async for ticket in tickets:
        number = issue_number_from_summary(pattern, ticket.summary)
        if number is None:
            continue
        previous = index.get(number)
        if previous is not None:
            logger.warning(f"Duplicate tickets for GitHub issue #{number}: {previous.key} and {ticket.key}; using {ticket.key}")
        index[number] = TicketRecord(key=ticket.key, status=ticket.status)

    logger.info(f"Known issues: {sorted(index)}")
    return index
