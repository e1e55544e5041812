"""Default cycle selection and cycle progress calculation."""

import math
from datetime import datetime, timezone

from jira_cycle_roadmap.models import (
    Cycle,
    CycleMetadata,
    CycleProgress,
    Initiative,
    ProgressMetrics,
    ReleaseItem,
)
from jira_cycle_roadmap.resolvers import CLOSED_CYCLE_STATES, parse_datetime

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_SECONDS_PER_DAY = 24 * 60 * 60

# Common tracker spellings mapped onto item statuses.
STATUS_ALIASES = {
    "to do": "todo",
    "not started": "todo",
    "open": "todo",
    "in progress": "inprogress",
    "in-progress": "inprogress",
    "wip": "inprogress",
    "work in progress": "inprogress",
    "completed": "done",
    "closed": "done",
    "finished": "done",
    "canceled": "cancelled",
    "rescheduled": "replanned",
}


def _round(value: float) -> int:
    """Round half up, so 12.5 becomes 13."""
    return int(math.floor(value + 0.5))


def _cycle_date(cycle: Cycle) -> datetime:
    return parse_datetime(cycle.start or cycle.delivery) or _EPOCH


def is_closed_state(state: str | None) -> bool:
    return state in CLOSED_CYCLE_STATES


def is_active_state(state: str | None) -> bool:
    return state == "active"


def select_default_cycle(cycles: list[Cycle] | None, now: datetime | None = None) -> Cycle | None:
    """Pick the cycle to show first.

    Oldest active cycle, then the oldest cycle that has not started yet, then
    the oldest closed cycle, then simply the oldest cycle.
    """
    if not cycles:
        return None

    now = now or datetime.now(timezone.utc)
    ordered = sorted(cycles, key=_cycle_date)

    for cycle in ordered:
        if is_active_state(cycle.state):
            return cycle

    for cycle in ordered:
        if _cycle_date(cycle) > now and not is_closed_state(cycle.state):
            return cycle

    for cycle in ordered:
        if is_closed_state(cycle.state):
            return cycle

    return ordered[0]


def normalize_status(status) -> str:
    if not status or not isinstance(status, str):
        return "todo"
    normalized = status.strip().lower()
    return STATUS_ALIASES.get(normalized, normalized)


def _effort(item: ReleaseItem) -> float:
    try:
        effort = float(item.effort)
    except (TypeError, ValueError):
        return 0
    return 0 if math.isnan(effort) else effort


def _sum_efforts(items: list[ReleaseItem], status: str | None = None) -> float:
    total = sum(
        _effort(item) for item in items
        if status is None or normalize_status(item.status) == status
    )
    return round(total, 2)


def calculate_release_item_progress(release_items: list[ReleaseItem]) -> ProgressMetrics:
    """Aggregate effort (in weeks) and counts per status."""
    if not release_items:
        return ProgressMetrics()

    planned = [item for item in release_items if normalize_status(item.status) != "replanned"]
    weeks = _sum_efforts(planned)
    weeks_done = _sum_efforts(release_items, "done")
    weeks_in_progress = _sum_efforts(release_items, "inprogress")
    weeks_postponed = _sum_efforts(release_items, "postponed")
    weeks_cancelled = _sum_efforts(release_items, "cancelled")
    weeks_not_to_do = weeks_postponed + weeks_cancelled

    items_count = len(planned)
    done_count = sum(1 for item in release_items if normalize_status(item.status) == "done")

    return ProgressMetrics(
        weeks=weeks,
        weeks_done=weeks_done,
        weeks_in_progress=weeks_in_progress,
        weeks_todo=_sum_efforts(release_items, "todo"),
        weeks_not_to_do=weeks_not_to_do,
        weeks_cancelled=weeks_cancelled,
        weeks_postponed=weeks_postponed,
        release_items_count=items_count,
        release_items_done_count=done_count,
        progress=_round(weeks_done / weeks * 100) if weeks > 0 else 0,
        progress_with_in_progress=(
            _round((weeks_done + weeks_in_progress) / weeks * 100) if weeks > 0 else 0
        ),
        progress_by_release_items=_round(done_count / items_count * 100) if items_count > 0 else 0,
        percentage_not_to_do=max(0, _round(weeks_not_to_do / weeks * 100)) if weeks > 0 else 0,
    )


def calculate_cycle_metadata(cycle: Cycle | None, now: datetime | None = None) -> CycleMetadata:
    """Where today falls within the cycle."""
    if cycle is None:
        return CycleMetadata()
    start = parse_datetime(cycle.start)
    end = parse_datetime(cycle.end)
    if start is None or end is None:
        return CycleMetadata()

    now = now or datetime.now(timezone.utc)
    days_from_start = math.floor((now - start).total_seconds() / _SECONDS_PER_DAY)
    days_in_cycle = math.floor((end - start).total_seconds() / _SECONDS_PER_DAY)
    percentage = _round(days_from_start / days_in_cycle * 100) if days_in_cycle > 0 else 0

    return CycleMetadata(
        start_month=start.strftime("%b"),
        end_month=end.strftime("%b"),
        days_from_start_of_cycle=max(0, days_from_start),
        days_in_cycle=max(0, days_in_cycle),
        current_day_percentage=min(max(0, percentage), 100),
    )


def calculate_cycle_progress(
    cycle: Cycle, initiatives: list[Initiative], now: datetime | None = None
) -> CycleProgress:
    """Progress of every release item under the given initiatives."""
    release_items = [
        release_item
        for initiative in initiatives
        for roadmap_item in initiative.roadmap_items
        for release_item in roadmap_item.release_items
    ]
    return CycleProgress(
        cycle=cycle,
        metrics=calculate_release_item_progress(release_items),
        metadata=calculate_cycle_metadata(cycle, now),
    )
