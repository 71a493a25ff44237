"""Keep a Jira project in sync with a GitHub repository's issues."""

__version__ = "0.1.0"
