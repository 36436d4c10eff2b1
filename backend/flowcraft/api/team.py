"""Selected team endpoints."""

from flask import Blueprint, jsonify, request

from flowcraft.api.common import error_response, get_workspace
from flowcraft.services.errors import FlowCraftError

bp = Blueprint("team", __name__, url_prefix="/api/team")


def _selection_summary(coordinator):
    active = coordinator.active_sprint
    return {
        "teamId": coordinator.selected_team_id,
        "loading": coordinator.loading,
        "issueCount": len(coordinator.issues),
        "sprintCount": len(coordinator.sprints),
        "activeSprintId": active.id if active else None
    }


@bp.route("", methods=["GET"])
def get_selected_team():
    """Get the currently selected team."""
    return jsonify({"data": _selection_summary(get_workspace().coordinator)})


@bp.route("", methods=["PUT"])
def select_team():
    """Switch the working team.

    Expects JSON body with:
        - teamId: Team to select, or null to clear the selection

    Issues, sprints and projects of the new team are loaded before returning.
    """
    data = request.get_json(silent=True)

    if data is None or "teamId" not in data:
        return jsonify({"error": "Missing required field: teamId"}), 400

    coordinator = get_workspace().coordinator
    try:
        coordinator.select_team(data["teamId"])
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": _selection_summary(coordinator)})
