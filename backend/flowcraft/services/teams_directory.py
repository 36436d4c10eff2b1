"""Team and membership directory backed by the teams service."""

import logging
import uuid
from typing import Optional

from flowcraft.services.errors import FlowCraftError

logger = logging.getLogger(__name__)

DEFAULT_TEAM_ROLES = ("owner", "member", "admin")
DEFAULT_INVITE_ROLES = ("member",)


class TeamsDirectory:
    """Wrappers around the teams service.

    Mutations let backend errors propagate. Passive loads (``load_teams``,
    ``pending_invitations``) log and degrade to an empty list.
    """

    def __init__(self, backend, invite_redirect_url: Optional[str] = None):
        self.backend = backend
        self.invite_redirect_url = invite_redirect_url

    def list_teams(self) -> list:
        response = self.backend.list_teams()
        if response["total"] == 0:
            logger.warning("No teams found for user")
        return response["teams"]

    def load_teams(self) -> list:
        try:
            return self.list_teams()
        except FlowCraftError as e:
            logger.error(f"Failed to load teams: {e}")
            return []

    def get_team(self, team_id: str) -> dict:
        return self.backend.get_team(team_id)

    def create_team(self, name: str, description: Optional[str] = None,
                    roles: tuple = DEFAULT_TEAM_ROLES) -> dict:
        """Create a team; the creator becomes its owner.

        The description lives in the team preferences, so the team is
        re-fetched after storing it.
        """
        team = self.backend.create_team(uuid.uuid4().hex, name, list(roles))

        if description:
            self.backend.update_team_prefs(team["$id"], {"description": description})
            return self.backend.get_team(team["$id"])

        return team

    def delete_team(self, team_id: str) -> None:
        self.backend.delete_team(team_id)

    def list_members(self, team_id: str) -> list:
        return self.backend.list_memberships(team_id)["memberships"]

    def invite_user(self, team_id: str, email: str, roles: tuple = DEFAULT_INVITE_ROLES,
                    redirect_url: Optional[str] = None, name: Optional[str] = None) -> dict:
        logger.info(f"Sending email invitation to {email} for team {team_id}")
        return self.backend.create_membership(
            team_id, email, list(roles),
            url=redirect_url or self.invite_redirect_url,
            name=name
        )

    def remove_member(self, team_id: str, membership_id: str) -> None:
        self.backend.delete_membership(team_id, membership_id)

    def update_member_roles(self, team_id: str, membership_id: str, roles: list) -> dict:
        return self.backend.update_membership(team_id, membership_id, roles)

    def accept_invitation(self, team_id: str, membership_id: str,
                          user_id: str, secret: str) -> dict:
        return self.backend.update_membership_status(team_id, membership_id, user_id, secret)

    def decline_invitation(self, team_id: str, membership_id: str) -> None:
        self.backend.delete_membership(team_id, membership_id)

    def pending_invitations(self, user_id: Optional[str]) -> list:
        """Unconfirmed memberships of ``user_id`` across the visible teams.

        The teams listing only covers teams with an active membership, so this
        finds re-invitations rather than first invitations.
        """
        if not user_id:
            return []

        try:
            teams = self.list_teams()
        except FlowCraftError as e:
            logger.error(f"Failed to fetch pending invitations: {e}")
            return []

        pending = []
        for team in teams:
            try:
                memberships = self.list_members(team["$id"])
            except FlowCraftError:
                # Skip teams whose memberships we cannot read
                continue
            pending.extend(
                m for m in memberships
                if m.get("userId") == user_id and not m.get("confirm")
            )

        logger.info(f"Found {len(pending)} pending invitations for {user_id}")
        return pending
