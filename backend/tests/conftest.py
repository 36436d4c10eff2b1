"""Shared fixtures for FlowCraft tests."""

import pytest
from datetime import datetime, timezone

from flowcraft import create_app
from flowcraft.services.memory_backend import MemoryBackend
from flowcraft.services.models import (
    Issue,
    IssueStatus,
    Project,
    Sprint,
    SprintStatus,
)
from flowcraft.services.selection_store import TeamSelectionStore
from flowcraft.workspace import Workspace


FIXED_NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def seed_document(backend, kind, model):
    """Store a model under its own id in the in-memory backend."""
    return backend.create_document(kind, model.to_payload(), document_id=model.id)


@pytest.fixture
def fixed_now():
    """Frozen clock for date-filter tests."""
    return FIXED_NOW


@pytest.fixture
def backend():
    """Empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def sample_sprints():
    """One completed, one active and one planned sprint of team-1."""
    return [
        Sprint(
            id="sprint-1",
            title="Sprint 1",
            start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            end_date=datetime(2024, 1, 14, tzinfo=timezone.utc),
            team_id="team-1",
            status=SprintStatus.COMPLETED
        ),
        Sprint(
            id="sprint-2",
            title="Sprint 2",
            start_date=datetime(2024, 1, 15, tzinfo=timezone.utc),
            end_date=datetime(2024, 1, 28, tzinfo=timezone.utc),
            team_id="team-1",
            status=SprintStatus.ACTIVE
        ),
        Sprint(
            id="sprint-3",
            title="Sprint 3",
            start_date=datetime(2024, 1, 29, tzinfo=timezone.utc),
            end_date=datetime(2024, 2, 11, tzinfo=timezone.utc),
            team_id="team-1",
            status=SprintStatus.PLANNED
        ),
    ]


@pytest.fixture
def sample_issues():
    """Issues of team-1 spread over statuses, sprints and assignees."""
    return [
        Issue(id="issue-1", title="Build login form", status=IssueStatus.DONE, priority=1,
              team_id="team-1", sprint_id="sprint-1", assigned_user_id="alice@example.com"),
        Issue(id="issue-2", title="Wire up session API", status=IssueStatus.IN_PROGRESS,
              priority=2, team_id="team-1", sprint_id="sprint-2",
              assigned_user_id="alice@example.com"),
        Issue(id="issue-3", title="Password reset email", status=IssueStatus.TODO, priority=3,
              team_id="team-1", sprint_id="sprint-2", assigned_user_id="bob@example.com"),
        Issue(id="issue-4", title="Audit log table", status=IssueStatus.IN_REVIEW, priority=3,
              team_id="team-1", assigned_user_id="bob@example.com"),
        Issue(id="issue-5", title="Update README", status=IssueStatus.DONE, priority=5,
              team_id="team-1"),
    ]


@pytest.fixture
def sample_projects():
    """A shared team-1 project and a private one owned by another user."""
    return [
        Project(id="proj-1", team_id="team-1", name="Authentication",
                owner_id="alice@example.com"),
        Project(id="proj-2", team_id="team-1", name="Bob's notes",
                owner_id="bob@example.com", is_private=True),
    ]


@pytest.fixture
def seeded_backend(backend, sample_issues, sample_sprints, sample_projects):
    """Backend holding team-1 with its issues, sprints, projects and members."""
    backend.create_team("team-1", "Team One", ["owner"])
    for email, name in [("alice@example.com", "Alice"), ("bob@example.com", "Bob")]:
        membership = backend.create_membership("team-1", email, ["member"], name=name)
        backend.update_membership_status("team-1", membership["$id"], email, "secret")

    for issue in sample_issues:
        seed_document(backend, "issue", issue)
    for sprint in sample_sprints:
        seed_document(backend, "sprint", sprint)
    for project in sample_projects:
        seed_document(backend, "project", project)
    return backend


@pytest.fixture
def selection_store(tmp_path):
    """Selection slot in a temporary directory."""
    return TeamSelectionStore(str(tmp_path / "config" / "selection.json"))


@pytest.fixture
def workspace(seeded_backend, selection_store):
    """Workspace over the seeded backend, viewed as alice."""
    return Workspace(
        seeded_backend,
        selection_store=selection_store,
        viewer_id="alice@example.com",
        now=lambda: FIXED_NOW
    )


@pytest.fixture
def app(workspace, tmp_path):
    """Create Flask test app."""
    app = create_app({
        "TESTING": True,
        "BACKEND": "memory",
        "SELECTION_FILE": str(tmp_path / "selection.json"),
        "RESTORE_SELECTION": False
    }, workspace=workspace)
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
