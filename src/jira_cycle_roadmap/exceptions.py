"""Exception hierarchy for JIRA Cycle Roadmap."""


class CycleRoadmapError(Exception):
    """Base exception for cycle roadmap errors."""

    pass


class ConfigNotFoundError(CycleRoadmapError):
    """Configuration file not found."""

    pass


class InvalidConfigError(CycleRoadmapError):
    """Configuration is invalid."""

    pass


class JiraAuthError(CycleRoadmapError):
    """JIRA authentication failed."""

    pass


class JiraConnectionError(CycleRoadmapError):
    """Cannot connect to JIRA server."""

    pass


class JiraRateLimitError(CycleRoadmapError):
    """JIRA rate limit exceeded."""

    pass


class InvalidJqlError(CycleRoadmapError):
    """Invalid JQL query."""

    pass


class NoCyclesFoundError(CycleRoadmapError):
    """The board has no sprints."""

    pass


class IssueParseError(CycleRoadmapError):
    """A raw issue is missing identity fields and cannot be parsed."""

    def __init__(self, message: str, issue_key: str | None = None) -> None:
        super().__init__(message)
        self.issue_key = issue_key
