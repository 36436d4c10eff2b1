"""Team-scoped project cache.

One bucket per team holds all of that team's projects plus an issue -> project
assignment map. Buckets are shared by every viewer, so reads apply the private
project rule for the requesting viewer. The map is derived from the
coordinator's issues; the issue records stay authoritative and every
assignment change goes through ``StateCoordinator.edit_issue``.
"""

import logging
import math
import threading
from typing import Optional

from flowcraft.services.coordinator import ISSUES_CHANGED, TEAM_CHANGED
from flowcraft.services.errors import (
    FlowCraftError,
    NoScopeError,
    NoTeamSelectedError,
    ProjectNotFoundError,
)
from flowcraft.services.models import ProjectBucket, ProjectStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "description", "owner_id", "owner_name", "status",
    "start_date", "due_date", "team_id", "is_private",
)


def _clean_description(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


class ProjectCache:

    def __init__(self, coordinator, gateway, viewer_id: Optional[str] = None):
        self.coordinator = coordinator
        self.gateway = gateway
        self.viewer_id = viewer_id
        self._buckets = {}
        self._lock = threading.RLock()
        coordinator.add_listener(self._on_state_event)

    def _on_state_event(self, event: str, team_id: Optional[str]) -> None:
        if event == TEAM_CHANGED:
            if team_id is None:
                with self._lock:
                    self._buckets.clear()
            else:
                self.load_projects(team_id)
        elif event == ISSUES_CHANGED:
            self.sync_assignments()

    def _current_bucket(self) -> ProjectBucket:
        team_id = self.coordinator.selected_team_id
        with self._lock:
            if not team_id or team_id not in self._buckets:
                return ProjectBucket()
            return self._buckets[team_id]

    def _find_bucket_by_project_id(self, project_id: str) -> Optional[str]:
        with self._lock:
            for team_id, bucket in self._buckets.items():
                if any(p.id == project_id for p in bucket.projects):
                    return team_id
        return None

    def visible_projects(self, viewer_id: Optional[str] = None) -> list:
        """Current bucket projects visible to ``viewer_id`` (default: the configured viewer)."""
        viewer_id = viewer_id or self.viewer_id
        with self._lock:
            projects = list(self._current_bucket().projects)
        return [p for p in projects if p.is_visible_to(viewer_id)]

    @property
    def projects(self) -> list:
        return self.visible_projects()

    @property
    def project_assignments(self) -> dict:
        with self._lock:
            return dict(self._current_bucket().assignments)

    def bucket(self, team_id: str) -> Optional[ProjectBucket]:
        with self._lock:
            return self._buckets.get(team_id)

    def load_projects(self, team_id: str) -> None:
        """Replace the team's project list; failures are logged, not raised."""
        try:
            projects = self.gateway.list_by_team("project", team_id)
        except FlowCraftError as e:
            logger.error(f"Failed to load projects for team {team_id}: {e}")
            return

        with self._lock:
            self._buckets.setdefault(team_id, ProjectBucket()).projects = projects

        if team_id == self.coordinator.selected_team_id:
            self.sync_assignments()

    def sync_assignments(self) -> bool:
        """Recompute the selected team's assignment map from its issues.

        Returns True when the map changed.
        """
        team_id = self.coordinator.selected_team_id
        if not team_id:
            return False

        mapping = {
            issue.id: issue.project_id
            for issue in self.coordinator.issues
            if issue.id and issue.project_id
        }

        with self._lock:
            bucket = self._buckets.get(team_id)
            if bucket is None:
                return False

            changed = len(mapping) != len(bucket.assignments) or any(
                bucket.assignments.get(issue_id) != project_id
                for issue_id, project_id in mapping.items()
            )
            if changed:
                bucket.assignments = mapping
            return changed

    def create_project(self, data: dict):
        """Create a project in the given team, the selected team, or privately.

        An explicit ``team_id`` key wins even when it is None. Without a team
        the project must be private; ``is_private`` defaults to True exactly
        when no team resolves.
        """
        if "team_id" in data:
            team_id = data["team_id"]
        else:
            team_id = self.coordinator.selected_team_id

        if not team_id and not data.get("is_private"):
            raise NoScopeError()

        is_private = data.get("is_private")
        project = self.gateway.create("project", {
            "team_id": team_id or None,
            "name": (data.get("name") or "").strip(),
            "description": _clean_description(data.get("description")),
            "owner_id": data.get("owner_id") or self.viewer_id,
            "owner_name": data.get("owner_name"),
            "status": ProjectStatus(data.get("status") or ProjectStatus.PLANNED),
            "start_date": data.get("start_date"),
            "due_date": data.get("due_date"),
            "is_private": (not team_id) if is_private is None else bool(is_private),
        })

        if team_id:
            with self._lock:
                self._buckets.setdefault(team_id, ProjectBucket()).projects.append(project)

        return project

    def update_project(self, project_id: str, partial: dict):
        """Send only the provided fields, then refresh the cached copy.

        A project no bucket holds is still updated remotely; the cache simply
        picks the change up on the next load.
        """
        changes = {}
        for key in UPDATABLE_FIELDS:
            if key not in partial:
                continue
            value = partial[key]
            if key == "name":
                value = (value or "").strip()
            elif key == "description":
                value = _clean_description(value)
            elif key == "status":
                value = ProjectStatus(value)
            changes[key] = value

        updated = self.gateway.update("project", project_id, changes)

        bucket_id = self._find_bucket_by_project_id(project_id)
        if bucket_id is None:
            logger.debug(f"Project {project_id} is not cached; skipping local update")
            return updated

        with self._lock:
            bucket = self._buckets[bucket_id]
            bucket.projects = [updated if p.id == project_id else p for p in bucket.projects]
        return updated

    def delete_project(self, project_id: str) -> None:
        """Delete a project and detach every issue assigned to it."""
        self.gateway.delete("project", project_id)

        issue_ids = {
            issue.id for issue in self.coordinator.issues
            if issue.project_id == project_id
        }

        bucket_id = self._find_bucket_by_project_id(project_id)
        if bucket_id is not None:
            with self._lock:
                bucket = self._buckets[bucket_id]
                issue_ids.update(
                    issue_id for issue_id, assigned in bucket.assignments.items()
                    if assigned == project_id
                )
                bucket.projects = [p for p in bucket.projects if p.id != project_id]

        for issue_id in sorted(issue_ids):
            self.coordinator.edit_issue({"id": issue_id, "project_id": None})

    def assign_issue_to_project(self, issue_id: str, project_id: str,
                                viewer_id: Optional[str] = None):
        """Assign an issue to a project of the selected team the viewer can see."""
        if not self.coordinator.selected_team_id:
            raise NoTeamSelectedError("Select a team before assigning issues")

        if self.get_project_by_id(project_id, viewer_id) is None:
            raise ProjectNotFoundError(project_id)

        return self.coordinator.edit_issue({"id": issue_id, "project_id": project_id})

    def remove_issue_from_project(self, issue_id: str):
        if not self.coordinator.selected_team_id:
            raise NoTeamSelectedError("Select a team before removing assignments")

        return self.coordinator.edit_issue({"id": issue_id, "project_id": None})

    def get_project_by_id(self, project_id: str, viewer_id: Optional[str] = None):
        return next((p for p in self.visible_projects(viewer_id) if p.id == project_id), None)

    def _is_hidden(self, project_id: str, viewer_id: Optional[str]) -> bool:
        with self._lock:
            project = next(
                (p for p in self._current_bucket().projects if p.id == project_id), None
            )
        return project is not None and not project.is_visible_to(viewer_id or self.viewer_id)

    def get_issues_for_project(self, project_id: str, viewer_id: Optional[str] = None) -> list:
        """Issues assigned to the project; empty for projects hidden from the viewer."""
        if not project_id or self._is_hidden(project_id, viewer_id):
            return []

        assignments = self.project_assignments
        return [
            issue for issue in self.coordinator.issues
            if issue.id and (
                issue.project_id == project_id
                or assignments.get(issue.id) == project_id
            )
        ]

    def get_project_progress(self, project_id: str, viewer_id: Optional[str] = None) -> int:
        """Percentage of the project's issues that are Done, rounded half up."""
        issues = self.get_issues_for_project(project_id, viewer_id)
        if not issues:
            return 0

        completed = sum(1 for issue in issues if issue.is_done)
        return int(math.floor(completed * 100 / len(issues) + 0.5))
