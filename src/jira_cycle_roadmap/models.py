"""Data models for the cycle roadmap pipeline."""

from dataclasses import dataclass, field
from datetime import date
from typing import Union


@dataclass(frozen=True)
class Cycle:
    """A time-boxed delivery period (a JIRA sprint)."""

    id: str
    name: str
    start: str | None = None
    end: str | None = None
    delivery: str | None = None
    state: str = "future"  # "active" | "closed" | "future" | "completed"

    @classmethod
    def from_sprint(cls, sprint: dict) -> "Cycle":
        """Build a cycle from a raw JIRA sprint dict."""
        end = sprint.get("endDate")
        return cls(
            id=str(sprint["id"]),
            name=sprint.get("name", ""),
            start=sprint.get("startDate"),
            end=end,
            delivery=sprint.get("completeDate") or end,
            state=(sprint.get("state") or "future").lower(),
        )

    def to_ref(self) -> "CycleRef":
        return CycleRef(id=self.id, name=self.name, start=self.start, state=self.state)


@dataclass(frozen=True)
class CycleRef:
    """Lookup reference from a release item to its cycle."""

    id: str
    name: str = ""
    start: str | None = None
    state: str | None = None


@dataclass(frozen=True)
class PersonRef:
    """A resolved tracker user."""

    id: str
    name: str = ""


@dataclass(frozen=True)
class RawAssignee:
    """A tracker user object passed through as-is."""

    raw: dict


# A plain id string, a resolved person, a passthrough object or nothing.
Assignee = Union[str, PersonRef, RawAssignee, None]


def assignee_id(assignee: Assignee) -> str | None:
    """Return the id of an assignee regardless of its shape."""
    if assignee is None:
        return None
    if isinstance(assignee, str):
        return assignee or None
    if isinstance(assignee, PersonRef):
        return assignee.id or None
    if isinstance(assignee, RawAssignee):
        value = assignee.raw.get("accountId") or assignee.raw.get("id")
        return str(value) if value else None
    return None


@dataclass(frozen=True)
class Validation:
    """A non-fatal data quality finding attached to an item."""

    item_id: str
    code: str
    status: str = "error"  # "error" | "warning"
    parameter: str | None = None

    @property
    def id(self) -> str:
        if self.parameter:
            return f"{self.item_id}-{self.code}-{self.parameter}"
        return f"{self.item_id}-{self.code}"


@dataclass(frozen=True)
class ReleaseItem:
    """The finest-grained unit of work, attributed to one cycle."""

    id: str
    ticket_id: str
    name: str
    status: str  # "todo" | "inprogress" | "done" | "cancelled" | "postponed"
    url: str
    stage: str
    summary: str = ""
    effort: float = 0
    area_ids: list[str] = field(default_factory=list)
    teams: list[str] = field(default_factory=list)
    is_external: bool = False
    assignee: Assignee = None
    validations: list[Validation] = field(default_factory=list)
    roadmap_item_id: str | None = None
    cycle: CycleRef | None = None
    created: str | None = None
    area: str | None = None

    @property
    def cycle_id(self) -> str | None:
        return self.cycle.id if self.cycle else None


@dataclass(frozen=True)
class RoadmapItem:
    """A group of release items sharing a parent tracker issue."""

    id: str
    name: str
    url: str
    summary: str = ""
    description: str | None = None
    area: str | None = None
    area_ids: list[str] = field(default_factory=list)
    theme: str | None = None
    initiative: str | None = None
    initiative_id: str | None = None
    is_external: bool = False
    owning_team: str | None = None
    release_items: list[ReleaseItem] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    validations: list[Validation] = field(default_factory=list)


@dataclass(frozen=True)
class Initiative:
    """Top-level grouping of roadmap items."""

    id: str
    name: str
    roadmap_items: list[RoadmapItem] = field(default_factory=list)


@dataclass(frozen=True)
class ProcessingError:
    """An issue that could not be parsed and was skipped."""

    issue_key: str | None
    message: str


@dataclass(frozen=True)
class ParseResult:
    """Nested initiative tree plus what could not be placed in it."""

    initiatives: list[Initiative]
    orphans: list[ReleaseItem] = field(default_factory=list)
    errors: list[ProcessingError] = field(default_factory=list)


@dataclass(frozen=True)
class Selection:
    """A selected filter value with an id and optional display name."""

    id: str | None
    name: str | None = None


@dataclass(frozen=True)
class FilterConfig:
    """User-selected filter values.

    ``cycle`` of ``None`` means the cycle axis is not applied at all.
    """

    area: str | None = None
    initiatives: list = field(default_factory=list)
    stages: list = field(default_factory=list)
    assignees: list = field(default_factory=list)
    cycle: object = None


@dataclass(frozen=True)
class FilterDiagnostic:
    """A configuration problem found while building filter predicates."""

    code: str
    message: str


@dataclass(frozen=True)
class FilterResult:
    """Filtered initiatives plus metadata about the filtering."""

    initiatives: list[Initiative]
    applied_filters: FilterConfig
    diagnostics: list[FilterDiagnostic] = field(default_factory=list)
    total_initiatives: int = 0
    total_roadmap_items: int = 0
    total_release_items: int = 0


@dataclass(frozen=True)
class ProgressMetrics:
    """Effort and count aggregates over release items."""

    weeks: float = 0
    weeks_done: float = 0
    weeks_in_progress: float = 0
    weeks_todo: float = 0
    weeks_not_to_do: float = 0
    weeks_cancelled: float = 0
    weeks_postponed: float = 0
    release_items_count: int = 0
    release_items_done_count: int = 0
    progress: int = 0
    progress_with_in_progress: int = 0
    progress_by_release_items: int = 0
    percentage_not_to_do: int = 0


@dataclass(frozen=True)
class CycleMetadata:
    """Calendar position of a cycle relative to now."""

    start_month: str = ""
    end_month: str = ""
    days_from_start_of_cycle: int = 0
    days_in_cycle: int = 0
    current_day_percentage: int = 0


@dataclass(frozen=True)
class CycleProgress:
    """A cycle merged with its progress metrics and calendar metadata."""

    cycle: Cycle
    metrics: ProgressMetrics
    metadata: CycleMetadata


@dataclass(frozen=True)
class CycleReleaseItems:
    """Release items of one roadmap item within one cycle."""

    cycle_id: str
    release_items: list[ReleaseItem]


@dataclass(frozen=True)
class RoadmapOverview:
    """A roadmap item with its release plan across cycles."""

    id: str
    summary: str
    initiative: str | None
    initiative_id: str | None
    theme: str | None
    area: str | None
    url: str
    release_plan: dict
    cycles: list[CycleReleaseItems]


@dataclass
class CycleData:
    """Complete result of a cycle data fetch."""

    cycles: list[Cycle]
    initiatives: list[Initiative]
    orphans: list[ReleaseItem] = field(default_factory=list)
    errors: list[ProcessingError] = field(default_factory=list)
    jira_url: str = ""
