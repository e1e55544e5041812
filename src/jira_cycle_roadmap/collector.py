"""Cycle data fetching and serialization."""

import logging
from dataclasses import asdict

from jira_cycle_roadmap.config import Config, config_exists, load_config
from jira_cycle_roadmap.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidJqlError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    NoCyclesFoundError,
)
from jira_cycle_roadmap.issue_parser import IssueParser
from jira_cycle_roadmap.jira_client import (
    AuthenticationError,
    JiraClient,
    RateLimitError,
)
from jira_cycle_roadmap.jira_client import (
    ConnectionError as JiraClientConnectionError,
)
from jira_cycle_roadmap.models import (
    Cycle,
    CycleData,
    CycleProgress,
    Initiative,
    PersonRef,
    RawAssignee,
    ReleaseItem,
    RoadmapItem,
    RoadmapOverview,
    Validation,
)
from jira_cycle_roadmap.overview import generate_overview
from jira_cycle_roadmap.validations import collect_validations, describe_validation

logger = logging.getLogger(__name__)


def get_config() -> Config:
    """Load the configuration, raising domain errors.

    Raises:
        ConfigNotFoundError: If config file not found
        InvalidConfigError: If config is invalid
    """
    if not config_exists():
        raise ConfigNotFoundError(
            "Configuration not found. Create ~/.jira-cycle-roadmap/config.toml to set up."
        )

    try:
        return load_config()
    except ValueError as e:
        raise InvalidConfigError(f"Invalid configuration: {e}")


def _parent_key(issue: dict) -> str | None:
    fields = issue.get("fields") if isinstance(issue, dict) else None
    parent = fields.get("parent") if isinstance(fields, dict) else None
    return parent.get("key") if isinstance(parent, dict) else None


def fetch_raw_data(client: JiraClient, config: Config) -> tuple[list[Cycle], list[list[dict]], dict[str, dict]]:
    """Fetch cycles, the issues of every cycle and their parent roadmap items.

    Raises:
        JiraAuthError: If JIRA authentication fails
        JiraRateLimitError: If rate limited
        JiraConnectionError: If cannot connect
        InvalidJqlError: If a generated query is rejected
        NoCyclesFoundError: If the board has no sprints
    """
    try:
        raw_sprints = client.get_sprints(config.board_id)
        if not raw_sprints:
            raise NoCyclesFoundError(f"No sprints found on board {config.board_id}.")
        cycles = [Cycle.from_sprint(sprint) for sprint in raw_sprints]

        issues_per_cycle = [
            client.get_issues_for_cycle(cycle.id, config.release_item_type)
            for cycle in cycles
        ]

        parent_keys = {
            key
            for issues in issues_per_cycle
            for key in map(_parent_key, issues)
            if key
        }
        roadmap_items = {
            issue["key"]: issue for issue in client.get_issues_by_keys(sorted(parent_keys))
        }
    except AuthenticationError:
        raise JiraAuthError(
            "JIRA authentication failed. Check your credentials in "
            "~/.jira-cycle-roadmap/config.toml."
        )
    except RateLimitError:
        raise JiraRateLimitError(
            "JIRA rate limit exceeded. Please wait a moment and try again."
        )
    except JiraClientConnectionError as e:
        raise JiraConnectionError(str(e))
    except ValueError as e:
        raise InvalidJqlError(f"Invalid JQL query: {e}")

    logger.info(
        "Fetched %d cycles, %d issues, %d roadmap items",
        len(cycles),
        sum(len(issues) for issues in issues_per_cycle),
        len(roadmap_items),
    )
    return cycles, issues_per_cycle, roadmap_items


def fetch_cycle_data() -> CycleData:
    """Fetch and parse the cycle data of the configured board."""
    config = get_config()
    client = JiraClient(config)
    cycles, issues_per_cycle, roadmap_items = fetch_raw_data(client, config)

    result = IssueParser(roadmap_items, config.settings).parse_cycles(issues_per_cycle, cycles)

    return CycleData(
        cycles=cycles,
        initiatives=result.initiatives,
        orphans=result.orphans,
        errors=result.errors,
        jira_url=config.jira_url.rstrip("/"),
    )


def fetch_roadmap_overview() -> list[RoadmapOverview]:
    """Fetch the external release plan of every roadmap item on the board."""
    config = get_config()
    client = JiraClient(config)
    cycles, issues_per_cycle, roadmap_items = fetch_raw_data(client, config)

    try:
        backlog_issues = client.get_backlog_issues(config.release_item_type)
    except (AuthenticationError, RateLimitError, JiraClientConnectionError, ValueError):
        # Without the backlog only the backlog flag of the release plan is affected
        logger.warning("Could not fetch backlog issues; continuing without them")
        backlog_issues = []

    return generate_overview(
        issues_per_cycle, cycles, roadmap_items, config.settings, backlog_issues=backlog_issues
    )


def _assignee_dict(assignee) -> dict | str | None:
    if isinstance(assignee, PersonRef):
        return {"id": assignee.id, "name": assignee.name}
    if isinstance(assignee, RawAssignee):
        return assignee.raw
    return assignee


def _validation_dict(validation: Validation, scope: str = "releaseItem") -> dict:
    description = describe_validation(validation, scope)
    return {
        "id": validation.id,
        "itemId": validation.item_id,
        "code": validation.code,
        "status": validation.status,
        "parameter": validation.parameter,
        "label": description["label"],
        "reference": description["reference"],
    }


def _cycle_dict(cycle: Cycle) -> dict:
    return asdict(cycle)


def release_item_to_dict(item: ReleaseItem) -> dict:
    return {
        "id": item.id,
        "ticketId": item.ticket_id,
        "name": item.name,
        "effort": item.effort,
        "areaIds": list(item.area_ids),
        "area": item.area,
        "teams": list(item.teams),
        "status": item.status,
        "url": item.url,
        "isExternal": item.is_external,
        "stage": item.stage,
        "assignee": _assignee_dict(item.assignee),
        "validations": [_validation_dict(v) for v in item.validations],
        "roadmapItemId": item.roadmap_item_id,
        "cycleId": item.cycle_id,
        "cycle": {"id": item.cycle.id, "name": item.cycle.name} if item.cycle else None,
        "created": item.created,
    }


def roadmap_item_to_dict(item: RoadmapItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "summary": item.summary,
        "description": item.description,
        "area": item.area,
        "areaIds": list(item.area_ids),
        "theme": item.theme,
        "initiative": item.initiative,
        "initiativeId": item.initiative_id,
        "isExternal": item.is_external,
        "owningTeam": item.owning_team,
        "url": item.url,
        "labels": list(item.labels),
        "startDate": item.start_date.isoformat() if item.start_date else None,
        "endDate": item.end_date.isoformat() if item.end_date else None,
        "releaseItems": [release_item_to_dict(r) for r in item.release_items],
        "validations": [_validation_dict(v, "roadmapItem") for v in item.validations],
    }


def initiatives_to_dicts(initiatives: list[Initiative]) -> list[dict]:
    return [
        {
            "id": initiative.id,
            "name": initiative.name,
            "roadmapItems": [roadmap_item_to_dict(r) for r in initiative.roadmap_items],
        }
        for initiative in initiatives
    ]


def validations_to_dicts(initiatives: list[Initiative], orphans: list[ReleaseItem]) -> list[dict]:
    """The flat data quality report."""
    return [
        _validation_dict(validation, scope)
        for scope, validation in collect_validations(initiatives, orphans)
    ]


def cycle_data_to_dict(data: CycleData) -> dict:
    """Convert CycleData to a JSON-serializable dict."""
    return {
        "cycles": [_cycle_dict(c) for c in data.cycles],
        "initiatives": initiatives_to_dicts(data.initiatives),
        "orphans": [release_item_to_dict(r) for r in data.orphans],
        "errors": [{"issueKey": e.issue_key, "message": e.message} for e in data.errors],
        "jiraUrl": data.jira_url,
    }


def cycle_progress_to_dict(progress: CycleProgress) -> dict:
    """Merge cycle, progress metrics and calendar metadata into one dict."""
    metrics = progress.metrics
    metadata = progress.metadata
    return {
        **_cycle_dict(progress.cycle),
        "weeks": metrics.weeks,
        "weeksDone": metrics.weeks_done,
        "weeksInProgress": metrics.weeks_in_progress,
        "weeksTodo": metrics.weeks_todo,
        "weeksNotToDo": metrics.weeks_not_to_do,
        "weeksCancelled": metrics.weeks_cancelled,
        "weeksPostponed": metrics.weeks_postponed,
        "releaseItemsCount": metrics.release_items_count,
        "releaseItemsDoneCount": metrics.release_items_done_count,
        "progress": metrics.progress,
        "progressWithInProgress": metrics.progress_with_in_progress,
        "progressByReleaseItems": metrics.progress_by_release_items,
        "percentageNotToDo": metrics.percentage_not_to_do,
        "startMonth": metadata.start_month,
        "endMonth": metadata.end_month,
        "daysFromStartOfCycle": metadata.days_from_start_of_cycle,
        "daysInCycle": metadata.days_in_cycle,
        "currentDayPercentage": metadata.current_day_percentage,
    }


def overview_to_dicts(overview: list[RoadmapOverview]) -> list[dict]:
    return [
        {
            "id": entry.id,
            "summary": entry.summary,
            "initiative": entry.initiative,
            "initiativeId": entry.initiative_id,
            "theme": entry.theme,
            "area": entry.area,
            "url": entry.url,
            "validations": entry.release_plan,
            "sprints": [
                {
                    "sprintId": group.cycle_id,
                    "releaseItems": [release_item_to_dict(r) for r in group.release_items],
                }
                for group in entry.cycles
            ],
        }
        for entry in overview
    ]
