"""Application state coordinator for the active team's issues and sprints."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from flowcraft.services.errors import (
    ActiveSprintConflictError,
    FlowCraftError,
    MissingIdError,
    NoTeamSelectedError,
    SprintStateError,
)
from flowcraft.services.models import (
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    IssueStatus,
    SprintStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

# Listener events, delivered as listener(event, team_id)
TEAM_CHANGED = "team_changed"
ISSUES_CHANGED = "issues_changed"


def _check_priority(priority) -> int:
    priority = int(priority)
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValueError(
            f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got {priority}"
        )
    return priority


class StateCoordinator:
    """Single source of truth for the selected team's issues and sprints.

    Mutations call the gateway first and reconcile local state with the
    server's response afterwards; the latest response wins. Local state is
    guarded by a re-entrant lock which is never held across a backend call.

    Every team switch bumps a generation counter. A load that finishes after
    a newer switch is discarded instead of overwriting the newer team's state.
    """

    def __init__(self, gateway, selection_store=None, strict_sprints: bool = False):
        self.gateway = gateway
        self.selection_store = selection_store
        self.strict_sprints = strict_sprints

        self._lock = threading.RLock()
        self._team_id = None
        self._issues = []
        self._sprints = []
        self._active_sprint_id = None
        self._loading = False
        self._generation = 0
        self._listeners = []

    # Listeners

    def add_listener(self, listener: Callable[[str, Optional[str]], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, event: str) -> None:
        team_id = self.selected_team_id
        for listener in list(self._listeners):
            listener(event, team_id)

    # Read views

    @property
    def selected_team_id(self) -> Optional[str]:
        with self._lock:
            return self._team_id

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._loading

    @property
    def issues(self) -> list:
        with self._lock:
            return list(self._issues)

    @property
    def sprints(self) -> list:
        with self._lock:
            return list(self._sprints)

    @property
    def active_sprint(self):
        with self._lock:
            if self._active_sprint_id is None:
                return None
            return self._find_sprint(self._active_sprint_id)

    def get_issue(self, issue_id: str):
        with self._lock:
            return next((i for i in self._issues if i.id == issue_id), None)

    def backlog(self) -> list:
        """Issues not assigned to any sprint."""
        return [i for i in self.issues if not i.sprint_id]

    def issues_for_sprint(self, sprint_id: str) -> list:
        return [i for i in self.issues if i.sprint_id == sprint_id]

    def _find_sprint(self, sprint_id: str):
        return next((s for s in self._sprints if s.id == sprint_id), None)

    def _require_team(self) -> str:
        team_id = self.selected_team_id
        if not team_id:
            raise NoTeamSelectedError()
        return team_id

    # Team selection

    def restore_selection(self) -> Optional[str]:
        """Select the team remembered in the durable slot, if any."""
        if self.selection_store is None:
            return None
        team_id = self.selection_store.read()
        if team_id:
            logger.info(f"Restoring selected team {team_id}")
            self.select_team(team_id)
        return team_id

    def _remember_selection(self, team_id: Optional[str]) -> None:
        if self.selection_store is None:
            return
        try:
            self.selection_store.write(team_id)
        except (IOError, OSError) as e:
            logger.warning(f"Failed to persist team selection: {e}")

    def _load_team(self, team_id: str) -> tuple:
        """Fetch issues and sprints in parallel, degrading failures to empty lists."""
        results = {}
        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = {
                kind: executor.submit(self.gateway.list_by_team, kind, team_id)
                for kind in ("issue", "sprint")
            }
            for kind, future in futures.items():
                try:
                    results[kind] = future.result()
                except FlowCraftError as e:
                    logger.error(f"Failed to load {kind}s for team {team_id}: {e}")
                    results[kind] = []
        return results["issue"], results["sprint"]

    def select_team(self, team_id: Optional[str]) -> bool:
        """Switch the active team and reload its issues and sprints.

        Returns False when the load was superseded by a newer switch.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._team_id = team_id or None
            self._issues = []
            self._sprints = []
            self._active_sprint_id = None
            self._loading = bool(team_id)

        self._remember_selection(team_id or None)
        self._notify(TEAM_CHANGED)

        if not team_id:
            self._notify(ISSUES_CHANGED)
            return True

        issues, sprints = self._load_team(team_id)

        with self._lock:
            if generation != self._generation:
                logger.info(f"Discarding stale load for team {team_id}")
                return False
            self._issues = issues
            self._sprints = sprints
            active = next((s for s in sprints if s.status == SprintStatus.ACTIVE), None)
            self._active_sprint_id = active.id if active else None
            self._loading = False

        logger.info(f"Loaded {len(issues)} issues and {len(sprints)} sprints for team {team_id}")
        self._notify(ISSUES_CHANGED)
        return True

    # Issues

    def _replace_issue(self, updated) -> None:
        with self._lock:
            self._issues = [updated if i.id == updated.id else i for i in self._issues]
        self._notify(ISSUES_CHANGED)

    def create_issue(self, fields: dict):
        team_id = self._require_team()

        status = fields.get("status")
        priority = fields.get("priority")
        issue = self.gateway.create("issue", {
            "title": fields.get("title", ""),
            "description": fields.get("description"),
            "status": IssueStatus(status) if status else IssueStatus.TODO,
            "priority": DEFAULT_PRIORITY if priority is None else _check_priority(priority),
            "team_id": team_id,
            "sprint_id": fields.get("sprint_id"),
            "assigned_user_id": fields.get("assigned_user_id"),
            "project_id": fields.get("project_id"),
        })

        with self._lock:
            # The team may have changed while the request was in flight
            if self._team_id == issue.team_id:
                self._issues.append(issue)
        self._notify(ISSUES_CHANGED)
        return issue

    def edit_issue(self, partial: dict):
        """Apply a partial update; ``partial`` must carry the issue ``id``."""
        issue_id = partial.get("id")
        if not issue_id:
            raise MissingIdError("issue")

        changes = {k: v for k, v in partial.items() if k != "id"}
        if changes.get("priority") is not None:
            changes["priority"] = _check_priority(changes["priority"])
        updated = self.gateway.update("issue", issue_id, changes)
        self._replace_issue(updated)
        return updated

    def update_issue_status(self, issue_id: str, status):
        return self.edit_issue({"id": issue_id, "status": IssueStatus(status)})

    def assign_to_sprint(self, issue_id: str, sprint_id: Optional[str]):
        """Move an issue into a sprint, or back to the backlog with None."""
        return self.edit_issue({"id": issue_id, "sprint_id": sprint_id})

    def delete_issue(self, issue_id: str) -> None:
        self.gateway.delete("issue", issue_id)
        with self._lock:
            self._issues = [i for i in self._issues if i.id != issue_id]
        self._notify(ISSUES_CHANGED)

    # Sprints

    def _replace_sprint(self, updated) -> None:
        with self._lock:
            self._sprints = [updated if s.id == updated.id else s for s in self._sprints]

    def create_sprint(self, fields: dict):
        """Create a Planned sprint.

        Missing dates default to now, so omitting both yields a zero-length
        sprint.
        """
        team_id = self._require_team()
        now = utcnow()

        sprint = self.gateway.create("sprint", {
            "title": fields.get("title", ""),
            "description": fields.get("description"),
            "start_date": fields.get("start_date") or now,
            "end_date": fields.get("end_date") or now,
            "team_id": team_id,
            "status": SprintStatus.PLANNED,
        })

        with self._lock:
            if self._team_id == sprint.team_id:
                self._sprints.append(sprint)
        return sprint

    def edit_sprint(self, partial: dict):
        """Apply a partial update to a sprint's details.

        Status only changes through ``start_sprint`` and ``end_sprint``; a
        status that differs from the current one raises SprintStateError.
        """
        sprint_id = partial.get("id")
        if not sprint_id:
            raise MissingIdError("sprint")

        changes = {k: v for k, v in partial.items() if k not in ("id", "status")}
        status = partial.get("status")
        if status is not None:
            with self._lock:
                sprint = self._find_sprint(sprint_id)
            if sprint is None or SprintStatus(status) != sprint.status:
                raise SprintStateError(
                    f"Sprint {sprint_id} status changes go through start and end"
                )

        updated = self.gateway.update("sprint", sprint_id, changes)
        self._replace_sprint(updated)
        return updated

    def delete_sprint(self, sprint_id: str) -> None:
        self.gateway.delete("sprint", sprint_id)
        with self._lock:
            self._sprints = [s for s in self._sprints if s.id != sprint_id]
            if self._active_sprint_id == sprint_id:
                self._active_sprint_id = None

    def start_sprint(self, sprint_id: str):
        """Mark a sprint Active and track it as the active sprint.

        Other Active sprints are left alone unless ``strict_sprints`` is set,
        in which case starting a second one raises ActiveSprintConflictError.
        """
        with self._lock:
            sprint = self._find_sprint(sprint_id)
            if sprint is not None and sprint.status == SprintStatus.COMPLETED:
                raise SprintStateError(f"Sprint {sprint_id} is already completed")
            if self.strict_sprints:
                active = next(
                    (s for s in self._sprints
                     if s.status == SprintStatus.ACTIVE and s.id != sprint_id),
                    None
                )
                if active is not None:
                    raise ActiveSprintConflictError(sprint_id, active.id)

        updated = self.gateway.update("sprint", sprint_id, {"status": SprintStatus.ACTIVE})

        with self._lock:
            self._replace_sprint(updated)
            self._active_sprint_id = updated.id
        return updated

    def end_sprint(self, sprint_id: str, return_unfinished: bool = False):
        """Mark a sprint Completed.

        Issues keep their sprint unless ``return_unfinished`` is set, which
        moves every issue that is not Done back to the backlog.
        """
        with self._lock:
            sprint = self._find_sprint(sprint_id)
            if sprint is not None and sprint.status == SprintStatus.PLANNED:
                raise SprintStateError(f"Sprint {sprint_id} has not been started")

        updated = self.gateway.update("sprint", sprint_id, {"status": SprintStatus.COMPLETED})

        with self._lock:
            self._replace_sprint(updated)
            if self._active_sprint_id == sprint_id:
                self._active_sprint_id = None

        if return_unfinished:
            for issue in self.issues_for_sprint(sprint_id):
                if not issue.is_done:
                    self.assign_to_sprint(issue.id, None)

        return updated
