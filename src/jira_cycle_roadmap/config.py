"""Configuration management for JIRA Cycle Roadmap."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import tomli_w

ITEM_STATUSES = ("todo", "inprogress", "done", "cancelled", "postponed")

DEFAULT_STAGES = ("s0", "s1", "s2", "s3", "s3+")
DEFAULT_RELEASABLE_STAGES = ("s1", "s2", "s3", "s3+")

DEFAULT_STATUS_MAPPINGS = {
    "18234": "todo",
    "18264": "inprogress",
    "18235": "done",
    "18295": "cancelled",
    "18306": "postponed",
}


@dataclass(frozen=True)
class RoadmapSettings:
    """Business settings passed explicitly to every pipeline component."""

    label_translations: dict[str, dict[str, str]] = field(default_factory=dict)
    stages: tuple[str, ...] = DEFAULT_STAGES
    releasable_stages: tuple[str, ...] = DEFAULT_RELEASABLE_STAGES
    final_release_stages: tuple[str, ...] | None = None  # defaults to the last stage
    status_mappings: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_STATUS_MAPPINGS)
    )
    future_statuses: tuple[str, ...] = ("todo", "inprogress", "postponed")
    virtual_theme: str = "virtual"
    no_pre_release_allowed_label: str = "roadmap:no-pre-release-allowed"
    effort_field: str = "effort"
    sprint_field: str = "sprint"
    external_roadmap_field: str | None = None
    external_roadmap_description_field: str | None = None
    jira_url: str = "https://example.com"

    @property
    def final_stages(self) -> tuple[str, ...]:
        if self.final_release_stages is not None:
            return self.final_release_stages
        return self.stages[-1:]

    def translations_for(self, bucket: str) -> dict[str, str]:
        return self.label_translations.get(bucket, {})

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of error messages."""
        errors: list[str] = []

        if not self.stages:
            errors.append("At least one stage must be configured")
        for stage in self.releasable_stages:
            if stage not in self.stages:
                errors.append(f"Releasable stage '{stage}' is not a configured stage")
        for stage in self.final_stages:
            if stage not in self.stages:
                errors.append(f"Final stage '{stage}' is not a configured stage")

        for status_id, status in self.status_mappings.items():
            if status not in ITEM_STATUSES:
                errors.append(
                    f"Status mapping for '{status_id}' must be one of "
                    f"{', '.join(ITEM_STATUSES)}"
                )

        if not self.virtual_theme:
            errors.append("Virtual theme label is required")

        return errors


@dataclass
class Config:
    """Configuration for JIRA connection and roadmap settings."""

    jira_url: str
    jira_email: str
    jira_api_token: str
    board_id: int | None = None
    release_item_type: str = "Release Item"
    settings: RoadmapSettings = field(default_factory=RoadmapSettings)

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        if not self.jira_url:
            errors.append("JIRA URL is required")
        else:
            parsed = urlparse(self.jira_url)
            if parsed.scheme not in ("http", "https"):
                errors.append("JIRA URL must start with http:// or https://")
            if not parsed.netloc:
                errors.append("JIRA URL must include a domain")

        if not self.jira_email:
            errors.append("JIRA email is required")
        elif "@" not in self.jira_email:
            errors.append("JIRA email must be a valid email address")

        if not self.jira_api_token:
            errors.append("JIRA API token is required")

        if self.board_id is None:
            errors.append("JIRA board id is required")

        errors.extend(self.settings.validate())
        return errors


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".jira-cycle-roadmap"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


def config_exists() -> bool:
    """Check if configuration file exists."""
    return get_config_path().exists()


def settings_from_dict(data: dict, jira_url: str = "") -> RoadmapSettings:
    """Build roadmap settings from parsed TOML sections."""
    fields_section = data.get("fields", {})
    stages_section = data.get("stages", {})
    statuses_section = data.get("statuses", {})
    labels_section = data.get("labels", {})
    defaults = RoadmapSettings()

    final = stages_section.get("final")
    return RoadmapSettings(
        label_translations={
            bucket: dict(values)
            for bucket, values in data.get("translations", {}).items()
        },
        stages=tuple(stages_section.get("all", defaults.stages)),
        releasable_stages=tuple(
            stages_section.get("releasable", defaults.releasable_stages)
        ),
        final_release_stages=tuple(final) if final is not None else None,
        status_mappings={
            str(k): v
            for k, v in statuses_section.get(
                "mappings", defaults.status_mappings
            ).items()
        },
        future_statuses=tuple(
            statuses_section.get("future", defaults.future_statuses)
        ),
        virtual_theme=labels_section.get("virtual_theme", defaults.virtual_theme),
        no_pre_release_allowed_label=labels_section.get(
            "no_pre_release_allowed", defaults.no_pre_release_allowed_label
        ),
        effort_field=fields_section.get("effort", defaults.effort_field),
        sprint_field=fields_section.get("sprint", defaults.sprint_field),
        external_roadmap_field=fields_section.get("external_roadmap"),
        external_roadmap_description_field=fields_section.get(
            "external_roadmap_description"
        ),
        jira_url=jira_url.rstrip("/") or defaults.jira_url,
    )


def load_config() -> Config:
    """Load configuration from TOML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.jira-cycle-roadmap/config.toml to set up."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    jira_section = data.get("jira", {})
    jira_url = jira_section.get("url", "")

    config = Config(
        jira_url=jira_url,
        jira_email=jira_section.get("email", ""),
        jira_api_token=jira_section.get("api_token", ""),
        board_id=jira_section.get("board_id"),
        release_item_type=jira_section.get("release_item_type", "Release Item"),
        settings=settings_from_dict(data, jira_url),
    )

    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: Config) -> None:
    """Save configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()
    settings = config.settings

    jira_data: dict = {
        "url": config.jira_url,
        "email": config.jira_email,
        "api_token": config.jira_api_token,
        "release_item_type": config.release_item_type,
    }
    if config.board_id is not None:
        jira_data["board_id"] = config.board_id

    fields_data: dict[str, str] = {
        "effort": settings.effort_field,
        "sprint": settings.sprint_field,
    }
    if settings.external_roadmap_field:
        fields_data["external_roadmap"] = settings.external_roadmap_field
    if settings.external_roadmap_description_field:
        fields_data["external_roadmap_description"] = (
            settings.external_roadmap_description_field
        )

    stages_data: dict = {
        "all": list(settings.stages),
        "releasable": list(settings.releasable_stages),
    }
    if settings.final_release_stages is not None:
        stages_data["final"] = list(settings.final_release_stages)

    data: dict = {
        "jira": jira_data,
        "fields": fields_data,
        "stages": stages_data,
        "statuses": {
            "future": list(settings.future_statuses),
            "mappings": dict(settings.status_mappings),
        },
        "labels": {
            "virtual_theme": settings.virtual_theme,
            "no_pre_release_allowed": settings.no_pre_release_allowed_label,
        },
    }

    if settings.label_translations:
        data["translations"] = {
            bucket: dict(values)
            for bucket, values in settings.label_translations.items()
        }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
