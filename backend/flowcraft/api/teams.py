"""Team and membership endpoints."""

from flask import Blueprint, jsonify, request

from flowcraft.api.common import error_response, get_viewer_id, get_workspace
from flowcraft.services.errors import FlowCraftError
from flowcraft.services.teams_directory import DEFAULT_INVITE_ROLES

bp = Blueprint("teams", __name__, url_prefix="/api/teams")


@bp.route("", methods=["GET"])
def list_teams():
    """List the teams the user belongs to (empty if they cannot be loaded)."""
    return jsonify({"data": get_workspace().teams.load_teams()})


@bp.route("", methods=["POST"])
def create_team():
    """Create a team.

    Expects JSON body with:
        - name: Team name
        - description: Optional description
    """
    data = request.get_json(silent=True)

    if not data or not (data.get("name") or "").strip():
        return jsonify({"error": "Missing required field: name"}), 400

    try:
        team = get_workspace().teams.create_team(data["name"].strip(), data.get("description"))
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": team}), 201


@bp.route("/invitations", methods=["GET"])
def list_pending_invitations():
    """Unconfirmed memberships of the viewer."""
    invitations = get_workspace().teams.pending_invitations(get_viewer_id())
    return jsonify({"data": invitations})


@bp.route("/<team_id>", methods=["DELETE"])
def delete_team(team_id):
    """Delete a team; deleting the selected team clears the selection."""
    workspace = get_workspace()

    try:
        workspace.teams.delete_team(team_id)
    except FlowCraftError as e:
        return error_response(e)

    if workspace.coordinator.selected_team_id == team_id:
        workspace.coordinator.select_team(None)

    return jsonify({"data": {"deleted": True}})


@bp.route("/<team_id>/members", methods=["GET"])
def list_members(team_id):
    try:
        members = get_workspace().teams.list_members(team_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": members})


@bp.route("/<team_id>/members", methods=["POST"])
def invite_member(team_id):
    """Invite a user by email.

    Expects JSON body with:
        - email: Invitee email
        - roles: Optional roles (default ["member"])
        - name: Optional invitee name
        - redirectUrl: Optional accept-invite URL
    """
    data = request.get_json(silent=True)

    if not data or not data.get("email"):
        return jsonify({"error": "Missing required field: email"}), 400

    try:
        membership = get_workspace().teams.invite_user(
            team_id,
            data["email"],
            roles=tuple(data.get("roles") or DEFAULT_INVITE_ROLES),
            redirect_url=data.get("redirectUrl"),
            name=data.get("name")
        )
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": membership}), 201


@bp.route("/<team_id>/members/<membership_id>", methods=["PATCH"])
def update_member_roles(team_id, membership_id):
    data = request.get_json(silent=True)

    if not data or not isinstance(data.get("roles"), list):
        return jsonify({"error": "Missing required field: roles"}), 400

    try:
        membership = get_workspace().teams.update_member_roles(team_id, membership_id, data["roles"])
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": membership})


@bp.route("/<team_id>/members/<membership_id>", methods=["DELETE"])
def remove_member(team_id, membership_id):
    """Remove a member, or decline an invitation."""
    try:
        get_workspace().teams.remove_member(team_id, membership_id)
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": {"removed": True}})


@bp.route("/<team_id>/members/<membership_id>/accept", methods=["POST"])
def accept_invitation(team_id, membership_id):
    """Accept an invitation with the userId and secret from the invite link."""
    data = request.get_json(silent=True)

    if not data or not all([data.get("userId"), data.get("secret")]):
        return jsonify({"error": "Missing required fields: userId, secret"}), 400

    try:
        membership = get_workspace().teams.accept_invitation(
            team_id, membership_id, data["userId"], data["secret"]
        )
    except FlowCraftError as e:
        return error_response(e)

    return jsonify({"data": membership})
