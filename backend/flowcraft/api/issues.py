"""Issue endpoints for the selected team."""

from flask import Blueprint, jsonify, request

from flowcraft.api.common import (
    error_response,
    fields_from_json,
    get_viewer_id,
    get_workspace,
)
from flowcraft.services.errors import FlowCraftError
from flowcraft.services.models import Issue

bp = Blueprint("issues", __name__, url_prefix="/api/issues")


@bp.route("", methods=["GET"])
def list_issues():
    """List the selected team's issues.

    Query params:
        - status: Optional status filter (e.g., "In Progress")
        - sprintId: Optional sprint filter
        - assignedUserId: Optional assignee filter
    """
    issues = get_workspace().coordinator.issues

    status = request.args.get("status")
    sprint_id = request.args.get("sprintId")
    assignee = request.args.get("assignedUserId")

    if status:
        issues = [i for i in issues if i.status == status]
    if sprint_id:
        issues = [i for i in issues if i.sprint_id == sprint_id]
    if assignee:
        issues = [i for i in issues if i.assigned_user_id == assignee]

    return jsonify({"data": [i.to_dict() for i in issues]})


@bp.route("/backlog", methods=["GET"])
def list_backlog():
    """List issues that are not in any sprint."""
    backlog = get_workspace().coordinator.backlog()
    return jsonify({"data": [i.to_dict() for i in backlog]})


@bp.route("", methods=["POST"])
def create_issue():
    """Create an issue in the selected team.

    Expects JSON body with title and optional description, status, priority,
    sprintId, assignedUserId and projectId. Status defaults to Todo and
    priority to 3.
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    try:
        issue = get_workspace().coordinator.create_issue(fields_from_json(Issue, data))
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": issue.to_dict()}), 201


@bp.route("/<issue_id>", methods=["PATCH"])
def edit_issue(issue_id):
    """Partially update an issue; only the provided fields change."""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    fields = fields_from_json(Issue, data)
    fields["id"] = issue_id

    try:
        issue = get_workspace().coordinator.edit_issue(fields)
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": issue.to_dict()})


@bp.route("/<issue_id>/status", methods=["PUT"])
def update_issue_status(issue_id):
    """Move an issue to another status column."""
    data = request.get_json(silent=True) or {}

    if not data.get("status"):
        return jsonify({"error": "Missing required field: status"}), 400

    try:
        issue = get_workspace().coordinator.update_issue_status(issue_id, data["status"])
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": issue.to_dict()})


@bp.route("/<issue_id>/sprint", methods=["PUT"])
def assign_issue_to_sprint(issue_id):
    """Assign an issue to a sprint; a null sprintId moves it to the backlog."""
    data = request.get_json(silent=True)

    if data is None or "sprintId" not in data:
        return jsonify({"error": "Missing required field: sprintId"}), 400

    try:
        issue = get_workspace().coordinator.assign_to_sprint(issue_id, data["sprintId"])
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": issue.to_dict()})


@bp.route("/<issue_id>/project", methods=["PUT"])
def assign_issue_to_project(issue_id):
    """Assign an issue to one of the selected team's projects."""
    data = request.get_json(silent=True) or {}

    if not data.get("projectId"):
        return jsonify({"error": "Missing required field: projectId"}), 400

    try:
        issue = get_workspace().projects.assign_issue_to_project(
            issue_id, data["projectId"], get_viewer_id()
        )
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": issue.to_dict()})


@bp.route("/<issue_id>/project", methods=["DELETE"])
def remove_issue_from_project(issue_id):
    try:
        issue = get_workspace().projects.remove_issue_from_project(issue_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": issue.to_dict()})


@bp.route("/<issue_id>", methods=["DELETE"])
def delete_issue(issue_id):
    try:
        get_workspace().coordinator.delete_issue(issue_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": {"deleted": True}})
