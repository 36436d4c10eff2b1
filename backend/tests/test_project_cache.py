"""Tests for the team-scoped project cache."""

import pytest
from unittest.mock import patch

from flowcraft.services.errors import (
    NoScopeError,
    NoTeamSelectedError,
    ProjectNotFoundError,
    RemoteFetchError,
)
from flowcraft.services.models import Project, ProjectStatus


@pytest.fixture
def cache(workspace):
    workspace.coordinator.select_team("team-1")
    return workspace.projects


class TestLoadProjects:
    """Test loading project buckets on team changes."""

    def test_loads_visible_projects_on_select(self, cache):
        """Other users' private projects are not listed."""
        assert [p.id for p in cache.projects] == ["proj-1"]

    def test_visibility_is_per_viewer(self, cache):
        """The bucket is shared; each viewer only sees their own private projects."""
        assert [p.id for p in cache.visible_projects("alice@example.com")] == ["proj-1"]
        assert [p.id for p in cache.visible_projects("bob@example.com")] == ["proj-1", "proj-2"]
        assert cache.get_project_by_id("proj-2", "alice@example.com") is None
        assert cache.get_project_by_id("proj-2", "bob@example.com").name == "Bob's notes"

    def test_clears_buckets_without_team(self, workspace, cache):
        workspace.coordinator.select_team(None)

        assert cache.bucket("team-1") is None
        assert cache.projects == []

    def test_load_error_is_swallowed(self, workspace):
        """A failing fetch leaves the cache empty instead of raising."""
        with patch.object(workspace.gateway, "list_by_team",
                          side_effect=RemoteFetchError("Backend error: 503", status_code=503)):
            workspace.coordinator.select_team("team-1")

        assert workspace.projects.projects == []
        assert workspace.projects.bucket("team-1") is None


class TestProjectProgress:
    """Test project progress percentages."""

    def test_empty_project(self, cache):
        assert cache.get_project_progress("proj-1") == 0

    def test_all_done(self, cache):
        cache.assign_issue_to_project("issue-1", "proj-1")
        assert cache.get_project_progress("proj-1") == 100

    def test_rounds_half_up(self, cache):
        """Two of three done is 66.67%, reported as 67."""
        for issue_id in ("issue-1", "issue-5", "issue-2"):
            cache.assign_issue_to_project(issue_id, "proj-1")

        assert cache.get_project_progress("proj-1") == 67

    def test_follows_status_changes(self, workspace, cache):
        cache.assign_issue_to_project("issue-2", "proj-1")
        assert cache.get_project_progress("proj-1") == 0

        workspace.coordinator.update_issue_status("issue-2", "Done")

        assert cache.get_project_progress("proj-1") == 100


class TestAssignments:
    """Test issue to project assignment."""

    def test_assign_updates_issue_and_map(self, workspace, cache, seeded_backend):
        cache.assign_issue_to_project("issue-3", "proj-1")

        assert workspace.coordinator.get_issue("issue-3").project_id == "proj-1"
        assert cache.project_assignments == {"issue-3": "proj-1"}
        assert seeded_backend.get_document("issue", "issue-3")["projectId"] == "proj-1"
        assert [i.id for i in cache.get_issues_for_project("proj-1")] == ["issue-3"]

    def test_assign_to_missing_project(self, workspace, cache):
        """A failed assignment leaves the existing project in place."""
        cache.assign_issue_to_project("issue-3", "proj-1")

        with pytest.raises(ProjectNotFoundError):
            cache.assign_issue_to_project("issue-3", "proj-404")

        assert workspace.coordinator.get_issue("issue-3").project_id == "proj-1"
        assert cache.project_assignments == {"issue-3": "proj-1"}

    def test_assign_to_hidden_project(self, cache):
        """Private projects of other users are not assignable."""
        with pytest.raises(ProjectNotFoundError):
            cache.assign_issue_to_project("issue-3", "proj-2")

    def test_assign_to_private_project_by_viewer(self, workspace, cache, seeded_backend):
        """Only the owner of a private project may assign issues to it."""
        with pytest.raises(ProjectNotFoundError):
            cache.assign_issue_to_project("issue-3", "proj-2", "alice@example.com")

        assert workspace.coordinator.get_issue("issue-3").project_id is None
        assert seeded_backend.get_document("issue", "issue-3")["projectId"] is None

        cache.assign_issue_to_project("issue-3", "proj-2", "bob@example.com")
        assert workspace.coordinator.get_issue("issue-3").project_id == "proj-2"

    def test_hidden_project_reports_nothing(self, workspace, cache):
        cache.assign_issue_to_project("issue-1", "proj-2", "bob@example.com")

        assert cache.get_issues_for_project("proj-2", "alice@example.com") == []
        assert cache.get_project_progress("proj-2", "alice@example.com") == 0
        assert cache.get_project_progress("proj-2", "bob@example.com") == 100

    def test_assign_without_team(self, workspace):
        with pytest.raises(NoTeamSelectedError):
            workspace.projects.assign_issue_to_project("issue-3", "proj-1")

    def test_remove_from_project(self, workspace, cache):
        cache.assign_issue_to_project("issue-3", "proj-1")

        cache.remove_issue_from_project("issue-3")

        assert workspace.coordinator.get_issue("issue-3").project_id is None
        assert cache.project_assignments == {}

    def test_issues_for_empty_project_id(self, cache):
        assert cache.get_issues_for_project("") == []


class TestCreateProject:
    """Test project creation scope rules."""

    def test_requires_team_or_private(self, workspace):
        with pytest.raises(NoScopeError):
            workspace.projects.create_project({"name": "Roadmap"})

    def test_private_without_team(self, workspace):
        project = workspace.projects.create_project({"name": "Notes", "is_private": True})

        assert project.team_id is None
        assert project.is_private is True
        assert project.owner_id == "alice@example.com"

    def test_uses_selected_team(self, cache):
        """Names are trimmed and a blank description is dropped."""
        project = cache.create_project({"name": "  Search  ", "description": "   "})

        assert project.team_id == "team-1"
        assert project.name == "Search"
        assert project.description is None
        assert project.is_private is False
        assert project.status == ProjectStatus.PLANNED
        assert project in cache.projects

    def test_explicit_null_team_wins(self, cache):
        """An explicit null team is not replaced by the selected team."""
        with pytest.raises(NoScopeError):
            cache.create_project({"name": "Loose", "team_id": None})

    def test_explicit_team(self, cache):
        project = cache.create_project({"name": "Infra", "team_id": "team-2"})

        assert project.team_id == "team-2"
        assert cache.bucket("team-2").projects == [project]
        assert project not in cache.projects


class TestUpdateProject:
    """Test project updates."""

    def test_replaces_cached_copy(self, cache):
        updated = cache.update_project("proj-1", {"name": " Auth v2 ", "status": "At Risk"})

        assert updated.name == "Auth v2"
        assert updated.status == ProjectStatus.AT_RISK
        assert cache.get_project_by_id("proj-1").name == "Auth v2"

    def test_uncached_project_updates_remotely(self, cache, seeded_backend):
        """Projects of teams that were never loaded are still updated."""
        elsewhere = Project(id="proj-9", team_id="team-9", name="Elsewhere")
        seeded_backend.create_document("project", elsewhere.to_payload(), document_id="proj-9")

        cache.update_project("proj-9", {"description": "Shared now"})

        assert seeded_backend.get_document("project", "proj-9")["description"] == "Shared now"
        assert cache.bucket("team-9") is None


class TestDeleteProject:
    """Test project deletion."""

    def test_detaches_assigned_issues(self, workspace, cache, seeded_backend):
        """Deleting a project clears project_id on every assigned issue."""
        cache.assign_issue_to_project("issue-1", "proj-1")
        cache.assign_issue_to_project("issue-2", "proj-1")

        cache.delete_project("proj-1")

        assert cache.get_project_by_id("proj-1") is None
        assert cache.project_assignments == {}
        for issue_id in ("issue-1", "issue-2"):
            assert workspace.coordinator.get_issue(issue_id).project_id is None
            assert seeded_backend.get_document("issue", issue_id)["projectId"] is None
