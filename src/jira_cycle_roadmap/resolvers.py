"""Stage, status and sprint resolution for release items."""

from datetime import datetime, timezone

from jira_cycle_roadmap.config import RoadmapSettings
from jira_cycle_roadmap.models import Cycle, ReleaseItem

UNKNOWN_STAGE = "internal"

FINISHED_STATUSES = ("done", "cancelled")
CLOSED_CYCLE_STATES = ("closed", "completed")


def parse_datetime(value) -> datetime | None:
    """Parse a JIRA date or datetime string into an aware datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def is_external_stage(stage: str, settings: RoadmapSettings) -> bool:
    return stage in settings.stages


def is_releasable_stage(stage: str, settings: RoadmapSettings) -> bool:
    return stage in settings.releasable_stages


def is_final_release_stage(stage: str, settings: RoadmapSettings) -> bool:
    return stage in settings.final_stages


def resolve_stage(summary: str | None, settings: RoadmapSettings) -> str:
    """Extract the stage from the last parenthesised token of a summary.

    "Feature X (s2)" resolves to "s2". Anything that is not a configured
    stage resolves to UNKNOWN_STAGE.
    """
    name = summary or ""
    start = name.rfind("(")
    end = name.rfind(")")
    if start == -1 or end <= start:
        return UNKNOWN_STAGE
    stage = name[start + 1:end].strip().lower()
    return stage if is_external_stage(stage, settings) else UNKNOWN_STAGE


def issue_sprint(fields: dict, settings: RoadmapSettings) -> dict | None:
    """Return the issue's own sprint; list-valued sprint fields yield the latest.

    Sprints that are not objects (e.g. the serialized strings of JIRA Server)
    are ignored.
    """
    sprint = fields.get(settings.sprint_field)
    if isinstance(sprint, list):
        sprint = sprint[-1] if sprint else None
    return sprint if isinstance(sprint, dict) and sprint else None


def resolve_status(
    fields: dict, cycle: Cycle | None, settings: RoadmapSettings
) -> str:
    """Map a JIRA status to an item status.

    An issue whose own sprint starts after the cycle it was fetched for has
    been moved forward and counts as postponed in that cycle.
    """
    own_sprint = issue_sprint(fields, settings)
    if own_sprint and cycle is not None:
        cycle_start = parse_datetime(cycle.start)
        sprint_start = parse_datetime(own_sprint.get("startDate"))
        if cycle_start and sprint_start and cycle_start < sprint_start:
            return "postponed"

    status = fields.get("status")
    status_id = str(status.get("id", "")) if isinstance(status, dict) else ""
    return settings.status_mappings.get(status_id, "todo")


def is_finished_status(status: str) -> bool:
    return status in FINISHED_STATUSES


def possible_future_status(item: ReleaseItem, settings: RoadmapSettings) -> bool:
    """Whether the item's status could still be delivered in a later cycle."""
    return item.status in settings.future_statuses


def is_scheduled_for_future(item: ReleaseItem, now: datetime | None = None) -> bool:
    """An item is scheduled for the future if its open cycle has not started yet."""
    if item.cycle is None:
        return False
    if item.cycle.state in CLOSED_CYCLE_STATES:
        return False
    start = parse_datetime(item.cycle.start)
    return start is not None and start > _now(now)


def is_in_backlog(item: ReleaseItem) -> bool:
    """An item without any cycle assignment sits in the backlog."""
    return item.cycle is None
