"""Project endpoints: team project cache and the project directory."""

from flask import Blueprint, jsonify, request

from flowcraft.api.common import (
    error_response,
    fields_from_json,
    get_viewer_id,
    get_workspace,
)
from flowcraft.services.errors import FlowCraftError
from flowcraft.services.gateway import DirectoryQuery
from flowcraft.services.models import Project

bp = Blueprint("projects", __name__, url_prefix="/api/projects")


def get_int_arg(name: str, default: int) -> int:
    """Read an integer query param, falling back to the default."""
    value = request.args.get(name)
    if value:
        try:
            return int(value)
        except ValueError:
            return default
    return default


@bp.route("", methods=["GET"])
def list_projects():
    """List projects visible to the viewer, with their progress.

    Query params:
        - teamId: Optional team; defaults to the selected team. Projects of
          other teams are fetched directly and carry no progress.
    """
    workspace = get_workspace()
    viewer_id = get_viewer_id()
    team_id = request.args.get("teamId")

    if team_id and team_id != workspace.coordinator.selected_team_id:
        try:
            projects = workspace.gateway.fetch_projects_by_team(team_id, viewer_id)
        except FlowCraftError as e:
            return error_response(e)
        return jsonify({"data": [p.to_dict() for p in projects]})

    cache = workspace.projects
    return jsonify({
        "data": [
            {**p.to_dict(), "progress": cache.get_project_progress(p.id, viewer_id)}
            for p in cache.visible_projects(viewer_id)
        ]
    })


@bp.route("/directory", methods=["GET"])
def list_projects_directory():
    """Paginated project directory across teams.

    Query params:
        - page: Zero-based page (default 0)
        - limit: Page size (default 10)
        - status: Optional project status
        - ownerId: Optional owner filter
        - teamId: Optional team filter
        - privateOnly: "true" to list only the viewer's private projects
        - dateFilter: "all" (default), "overdue" or "this-quarter"
    """
    options = DirectoryQuery(
        page=max(get_int_arg("page", 0), 0),
        limit=max(get_int_arg("limit", 10), 1),
        status=request.args.get("status") or None,
        owner_id=request.args.get("ownerId") or None,
        team_id=request.args.get("teamId") or None,
        private_only=request.args.get("privateOnly", "").lower() == "true",
        date_filter=request.args.get("dateFilter", "all"),
        viewer_id=get_viewer_id()
    )

    try:
        result = get_workspace().gateway.list_projects_directory(options)
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": result.to_dict()})


@bp.route("", methods=["POST"])
def create_project():
    """Create a project.

    Expects JSON body with name and optional teamId, description, ownerId,
    ownerName, status, startDate, dueDate and isPrivate. Without teamId the
    selected team is used; an explicit null teamId requires isPrivate.
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    if not (data.get("name") or "").strip():
        return jsonify({"error": "Missing required field: name"}), 400

    fields = fields_from_json(Project, data)
    fields.setdefault("owner_id", get_viewer_id())

    try:
        project = get_workspace().projects.create_project(fields)
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": project.to_dict()}), 201


@bp.route("/<project_id>", methods=["GET"])
def get_project(project_id):
    """Fetch a project; private projects are only visible to their owner."""
    try:
        project = get_workspace().gateway.fetch_project(project_id, get_viewer_id())
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": project.to_dict()})


@bp.route("/<project_id>", methods=["PATCH"])
def update_project(project_id):
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    workspace = get_workspace()
    try:
        workspace.gateway.fetch_project(project_id, get_viewer_id())
        project = workspace.projects.update_project(
            project_id, fields_from_json(Project, data)
        )
    except (FlowCraftError, ValueError) as e:
        return error_response(e)

    return jsonify({"data": project.to_dict()})


@bp.route("/<project_id>", methods=["DELETE"])
def delete_project(project_id):
    """Delete a project and detach its issues."""
    workspace = get_workspace()
    try:
        workspace.gateway.fetch_project(project_id, get_viewer_id())
        workspace.projects.delete_project(project_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": {"deleted": True}})


@bp.route("/<project_id>/issues", methods=["GET"])
def list_project_issues(project_id):
    issues = get_workspace().projects.get_issues_for_project(project_id, get_viewer_id())
    return jsonify({"data": [i.to_dict() for i in issues]})


@bp.route("/<project_id>/progress", methods=["GET"])
def get_project_progress(project_id):
    """Share of the project's issues that are Done, as an integer percentage."""
    progress = get_workspace().projects.get_project_progress(project_id, get_viewer_id())
    return jsonify({"data": {"projectId": project_id, "progress": progress}})
