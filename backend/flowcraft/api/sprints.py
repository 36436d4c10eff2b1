"""Sprint endpoints for the selected team."""

from flask import Blueprint, jsonify, request

from flowcraft.api.common import error_response, fields_from_json, get_workspace
from flowcraft.services.errors import FlowCraftError
from flowcraft.services.models import Sprint

bp = Blueprint("sprints", __name__, url_prefix="/api/sprints")


@bp.route("", methods=["GET"])
def list_sprints():
    sprints = get_workspace().coordinator.sprints
    return jsonify({"data": [s.to_dict() for s in sprints]})


@bp.route("/active", methods=["GET"])
def get_active_sprint():
    """Get the tracked active sprint (null when none is running)."""
    active = get_workspace().coordinator.active_sprint
    return jsonify({"data": active.to_dict() if active else None})


@bp.route("", methods=["POST"])
def create_sprint():
    """Create a Planned sprint.

    Expects JSON body with sprintTitle, startDate, endDate and optional
    sprintDescription. Missing dates default to now.
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    try:
        sprint = get_workspace().coordinator.create_sprint(fields_from_json(Sprint, data))
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": sprint.to_dict()}), 201


@bp.route("/<sprint_id>", methods=["PATCH"])
def edit_sprint(sprint_id):
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    fields = fields_from_json(Sprint, data)
    fields["id"] = sprint_id

    try:
        sprint = get_workspace().coordinator.edit_sprint(fields)
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": sprint.to_dict()})


@bp.route("/<sprint_id>", methods=["DELETE"])
def delete_sprint(sprint_id):
    try:
        get_workspace().coordinator.delete_sprint(sprint_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": {"deleted": True}})


@bp.route("/<sprint_id>/start", methods=["POST"])
def start_sprint(sprint_id):
    try:
        sprint = get_workspace().coordinator.start_sprint(sprint_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": sprint.to_dict()})


@bp.route("/<sprint_id>/end", methods=["POST"])
def end_sprint(sprint_id):
    """Complete a sprint.

    Optional JSON body:
        - returnUnfinished: Move issues that are not Done back to the backlog
    """
    data = request.get_json(silent=True) or {}

    try:
        sprint = get_workspace().coordinator.end_sprint(
            sprint_id,
            return_unfinished=bool(data.get("returnUnfinished", False))
        )
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": sprint.to_dict()})
