"""HTTP route handlers for the JIRA Cycle Roadmap API."""

from flask import Blueprint, jsonify, request

from jira_cycle_roadmap.collector import (
    cycle_data_to_dict,
    cycle_progress_to_dict,
    fetch_cycle_data,
    fetch_roadmap_overview,
    initiatives_to_dicts,
    overview_to_dicts,
    validations_to_dicts,
)
from jira_cycle_roadmap.config import config_exists
from jira_cycle_roadmap.cycles import calculate_cycle_progress, select_default_cycle
from jira_cycle_roadmap.exceptions import (
    ConfigNotFoundError,
    CycleRoadmapError,
    InvalidConfigError,
    InvalidJqlError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    NoCyclesFoundError,
)
from jira_cycle_roadmap.filters import apply_filters
from jira_cycle_roadmap.models import FilterConfig

bp = Blueprint("main", __name__)

ERROR_STATUS_CODES = [
    (ConfigNotFoundError, 503),
    (InvalidConfigError, 503),
    (JiraAuthError, 401),
    (JiraRateLimitError, 429),
    (JiraConnectionError, 503),
    (InvalidJqlError, 400),
    (NoCyclesFoundError, 404),
]


def _error_response(error: CycleRoadmapError):
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return jsonify({"error": str(error)}), status_code
    return jsonify({"error": str(error)}), 500


def _list_arg(name: str) -> list[str]:
    value = request.args.get(name, "")
    return [part.strip() for part in value.split(",") if part.strip()]


@bp.route("/health")
def health():
    """Health check endpoint."""
    config_loaded = config_exists()
    if config_loaded:
        return jsonify({"status": "ok", "config_loaded": True})
    else:
        return jsonify({
            "status": "error",
            "config_loaded": False,
            "message": "Configuration not found",
        }), 503


@bp.route("/api/cycle-data")
def api_cycle_data():
    """Return the full parsed initiative tree with all cycles."""
    try:
        data = fetch_cycle_data()
    except CycleRoadmapError as e:
        return _error_response(e)
    return jsonify(cycle_data_to_dict(data))


@bp.route("/api/cycle-overview")
def api_cycle_overview():
    """Return one cycle's filtered tree and progress.

    Without a ``cycle`` argument the default cycle is used.
    """
    try:
        data = fetch_cycle_data()
    except CycleRoadmapError as e:
        return _error_response(e)

    cycle_id = request.args.get("cycle", "").strip()
    if cycle_id:
        cycle = next((c for c in data.cycles if c.id == cycle_id), None)
        if cycle is None:
            return jsonify({"error": f"Unknown cycle: {cycle_id}"}), 404
    else:
        cycle = select_default_cycle(data.cycles)

    filters = FilterConfig(
        area=request.args.get("area") or None,
        initiatives=_list_arg("initiatives"),
        stages=_list_arg("stages"),
        assignees=_list_arg("assignees"),
        cycle=cycle.id,
    )
    result = apply_filters(data.initiatives, filters)
    progress = calculate_cycle_progress(cycle, result.initiatives)

    return jsonify({
        "cycle": cycle_progress_to_dict(progress),
        "initiatives": initiatives_to_dicts(result.initiatives),
        "diagnostics": [
            {"code": d.code, "message": d.message} for d in result.diagnostics
        ],
        "totalInitiatives": result.total_initiatives,
        "totalRoadmapItems": result.total_roadmap_items,
        "totalReleaseItems": result.total_release_items,
    })


@bp.route("/api/validations")
def api_validations():
    """Return the flat data quality report."""
    try:
        data = fetch_cycle_data()
    except CycleRoadmapError as e:
        return _error_response(e)

    return jsonify({
        "validations": validations_to_dicts(data.initiatives, data.orphans),
        "errors": [{"issueKey": e.issue_key, "message": e.message} for e in data.errors],
    })


@bp.route("/api/roadmap")
def api_roadmap():
    """Return the external release plan per roadmap item."""
    try:
        overview = fetch_roadmap_overview()
    except CycleRoadmapError as e:
        return _error_response(e)
    return jsonify(overview_to_dicts(overview))
