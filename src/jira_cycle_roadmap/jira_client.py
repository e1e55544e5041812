"""JIRA API client with retry logic."""

from jira import JIRA, JIRAError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jira_cycle_roadmap.config import Config

BASE_ISSUE_FIELDS = [
    "summary",
    "status",
    "assignee",
    "reporter",
    "labels",
    "parent",
    "issuetype",
    "created",
    "updated",
]


class RateLimitError(Exception):
    """Raised when JIRA API rate limit is hit."""

    pass


class AuthenticationError(Exception):
    """Raised when JIRA authentication fails."""

    pass


class ConnectionError(Exception):
    """Raised when JIRA server cannot be reached."""

    pass


def _raise_for_jira_error(e: JIRAError) -> None:
    if e.status_code == 429:
        raise RateLimitError(
            "Rate limited by JIRA. Retrying with exponential backoff..."
        ) from e
    if e.status_code == 401:
        raise AuthenticationError(
            "Authentication failed. Check your email and API token."
        ) from e
    if e.status_code == 400:
        raise ValueError(f"Invalid JQL query: {e.text}") from e
    raise e


class JiraClient:
    """Client for fetching sprints and issues from JIRA Cloud."""

    def __init__(self, config: Config) -> None:
        """Initialize JIRA client with configuration."""
        self.config = config
        self._client: JIRA | None = None

    def _get_client(self) -> JIRA:
        """Get or create JIRA client instance."""
        if self._client is None:
            try:
                self._client = JIRA(
                    server=self.config.jira_url,
                    basic_auth=(self.config.jira_email, self.config.jira_api_token),
                    timeout=15,
                )
            except JIRAError as e:
                if e.status_code == 401:
                    raise AuthenticationError(
                        "Authentication failed. Check your email and API token."
                    ) from e
                raise
            except Exception as e:
                error_msg = str(e).lower()
                if "connection" in error_msg or "resolve" in error_msg or "timeout" in error_msg:
                    raise ConnectionError(
                        f"Cannot connect to JIRA server at {self.config.jira_url}. "
                        "Check the URL and your network connection."
                    ) from e
                raise
        return self._client

    def issue_fields(self) -> list[str]:
        """Fields needed to parse release items."""
        settings = self.config.settings
        return [*BASE_ISSUE_FIELDS, settings.effort_field, settings.sprint_field]

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True,
    )
    def search_issues(self, jql: str, fields: list[str] | None = None) -> list[dict]:
        """Search for issues, collecting all pages.

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            ValueError: If the JQL is rejected
        """
        client = self._get_client()

        try:
            result = client.enhanced_search_issues(
                jql,
                maxResults=0,
                fields=fields or self.issue_fields(),
            )
            return [self._issue_to_dict(issue) for issue in result]
        except JIRAError as e:
            _raise_for_jira_error(e)

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True,
    )
    def get_sprints(self, board_id: int) -> list[dict]:
        """Fetch all sprints of a board as raw dicts."""
        client = self._get_client()

        try:
            sprints = client.sprints(board_id, maxResults=False)
        except JIRAError as e:
            _raise_for_jira_error(e)
        return [sprint.raw for sprint in sprints]

    def get_issues_for_cycle(self, cycle_id: str, issue_type: str) -> list[dict]:
        return self.search_issues(f'sprint = {cycle_id} AND issuetype = "{issue_type}"')

    def get_backlog_issues(self, issue_type: str) -> list[dict]:
        return self.search_issues(
            f'sprint is EMPTY AND issuetype = "{issue_type}" AND statusCategory != Done'
        )

    def get_issues_by_keys(self, keys: list[str]) -> list[dict]:
        """Fetch roadmap item issues (summary and labels) by key."""
        if not keys:
            return []
        settings = self.config.settings
        fields = ["summary", "labels", "status", "duedate", "description"]
        for extra in (settings.external_roadmap_field, settings.external_roadmap_description_field):
            if extra:
                fields.append(extra)
        return self.search_issues("key in (" + ", ".join(sorted(keys)) + ")", fields=fields)

    def _issue_to_dict(self, issue) -> dict:
        """Convert JIRA issue object to dictionary."""
        return {
            "id": issue.id,
            "key": issue.key,
            "fields": issue.raw.get("fields", {}),
        }
