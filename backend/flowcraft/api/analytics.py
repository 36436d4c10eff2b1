"""Team analytics endpoint."""

import logging

from flask import Blueprint, jsonify

from flowcraft.api.common import error_response, get_workspace
from flowcraft.services import analytics
from flowcraft.services.errors import FlowCraftError, NoTeamSelectedError

logger = logging.getLogger(__name__)

bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@bp.route("", methods=["GET"])
def get_team_analytics():
    """Get analytics for the selected team.

    Returns:
        - Overview totals and overall completion rate
        - Per-engineer workload and completion
        - Per-sprint performance
        - Priority and status distributions

    Engineer names come from the team's memberships; if those cannot be
    loaded, user ids are shown instead.
    """
    workspace = get_workspace()
    team_id = workspace.coordinator.selected_team_id

    if not team_id:
        return error_response(NoTeamSelectedError("Choose a working team to view analytics"))

    try:
        members = workspace.teams.list_members(team_id)
    except FlowCraftError as e:
        logger.error(f"Failed to fetch team members: {e}")
        members = []

    data = analytics.team_analytics(
        workspace.coordinator.issues,
        workspace.coordinator.sprints,
        analytics.build_user_name_map(members)
    )
    return jsonify({"data": data})
