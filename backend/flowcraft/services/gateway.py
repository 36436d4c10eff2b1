"""Remote data gateway: typed CRUD over the backend's document collections."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from flowcraft.services.errors import ProjectAccessError
from flowcraft.services.models import ENTITY_MODELS, Project, ProjectStatus
from flowcraft.services.query import Query, quarter_bounds

logger = logging.getLogger(__name__)

DEFAULT_COLLECTIONS = {
    "issue": "issue",
    "sprint": "sprint",
    "project": "project",
}

DATE_FILTERS = ("all", "overdue", "this-quarter")


@dataclass
class DirectoryQuery:
    """Filters for the paginated project directory."""

    page: int = 0
    limit: int = 10
    status: Optional[str] = None
    owner_id: Optional[str] = None
    team_id: Optional[str] = None
    private_only: bool = False
    date_filter: str = "all"
    viewer_id: Optional[str] = None


@dataclass
class DirectoryResult:
    projects: list
    total: int

    def to_dict(self) -> dict:
        return {
            "projects": [p.to_dict() for p in self.projects],
            "total": self.total
        }


def _visibility_query(viewer_id: Optional[str]) -> list:
    """Non-private projects, or private projects owned by the viewer."""
    if viewer_id:
        return [Query.or_([
            Query.equal("isPrivate", False),
            Query.and_([
                Query.equal("isPrivate", True),
                Query.equal("ownerId", viewer_id)
            ])
        ])]
    return [Query.equal("isPrivate", False)]


class DataGateway:
    """Translate domain CRUD intents into backend document operations.

    ``backend`` is a BackendClient or MemoryBackend. ``now`` supplies the
    current time for the directory's date filters.
    """

    def __init__(self, backend, collections: Optional[dict] = None,
                 now: Optional[Callable[[], datetime]] = None):
        self.backend = backend
        self.collections = {**DEFAULT_COLLECTIONS, **(collections or {})}
        self._now = now or (lambda: datetime.now(timezone.utc))

    def _model(self, kind: str):
        if kind not in ENTITY_MODELS:
            raise ValueError(f"Unknown entity kind: {kind}")
        return ENTITY_MODELS[kind]

    def _collection(self, kind: str) -> str:
        self._model(kind)
        return self.collections[kind]

    def list_by_team(self, kind: str, team_id: str) -> list:
        """Fetch every document of ``kind`` owned by the team."""
        model = self._model(kind)
        data = self.backend.list_documents(
            self._collection(kind),
            [Query.equal("teamId", team_id)]
        )
        return [model.from_document(d) for d in data["documents"]]

    def get(self, kind: str, entity_id: str):
        model = self._model(kind)
        return model.from_document(self.backend.get_document(self._collection(kind), entity_id))

    def create(self, kind: str, payload: dict):
        """Create an entity from attribute values; the backend assigns identity."""
        model = self._model(kind)
        document = self.backend.create_document(
            self._collection(kind),
            model.payload_from(payload)
        )
        return model.from_document(document)

    def update(self, kind: str, entity_id: str, partial: dict):
        """Partial update: only keys present in ``partial`` change, None clears."""
        model = self._model(kind)
        document = self.backend.update_document(
            self._collection(kind),
            entity_id,
            model.payload_from(partial)
        )
        return model.from_document(document)

    def delete(self, kind: str, entity_id: str) -> None:
        self.backend.delete_document(self._collection(kind), entity_id)

    def fetch_projects_by_team(self, team_id: str, viewer_id: Optional[str] = None) -> list:
        """Team projects, excluding other users' private projects."""
        queries = [Query.equal("teamId", team_id)] + _visibility_query(viewer_id)
        data = self.backend.list_documents(self._collection("project"), queries)
        return [Project.from_document(d) for d in data["documents"]]

    def fetch_project(self, project_id: str, viewer_id: Optional[str] = None) -> Project:
        project = self.get("project", project_id)
        if not project.is_visible_to(viewer_id):
            raise ProjectAccessError(project_id)
        return project

    def build_directory_queries(self, options: DirectoryQuery) -> list:
        """Compose the backend queries for a project directory page."""
        if options.date_filter not in DATE_FILTERS:
            raise ValueError(f"Unknown date filter: {options.date_filter}")

        queries = [
            Query.limit(options.limit),
            Query.offset(options.page * options.limit),
            Query.order_asc("dueDate"),
        ]

        if options.status:
            queries.append(Query.equal("status", ProjectStatus(options.status)))

        viewer_id = options.viewer_id
        if options.private_only:
            # Only reached with a viewer; see list_projects_directory
            queries.append(Query.equal("isPrivate", True))
            queries.append(Query.equal("ownerId", viewer_id))
        elif options.team_id:
            queries.append(Query.equal("teamId", options.team_id))
            queries.extend(_visibility_query(viewer_id))
        elif viewer_id:
            # All teams: shared team projects plus the viewer's private ones
            queries.append(Query.or_([
                Query.and_([
                    Query.equal("isPrivate", False),
                    Query.is_not_null("teamId")
                ]),
                Query.and_([
                    Query.equal("isPrivate", True),
                    Query.equal("ownerId", viewer_id)
                ])
            ]))
        else:
            queries.append(Query.equal("isPrivate", False))
            queries.append(Query.is_not_null("teamId"))

        if not options.private_only and options.owner_id:
            queries.append(Query.equal("ownerId", options.owner_id))

        if options.date_filter == "overdue":
            queries.append(Query.less_than("dueDate", self._now()))
            queries.append(Query.not_equal("status", ProjectStatus.COMPLETED))
        elif options.date_filter == "this-quarter":
            start, end = quarter_bounds(self._now())
            queries.append(Query.greater_than_equal("dueDate", start))
            queries.append(Query.less_than_equal("dueDate", end))

        return queries

    def list_projects_directory(self, options: Optional[DirectoryQuery] = None) -> DirectoryResult:
        options = options or DirectoryQuery()
        if options.private_only and not options.viewer_id:
            # Private projects are only listed for their owner
            return DirectoryResult(projects=[], total=0)

        queries = self.build_directory_queries(options)
        data = self.backend.list_documents(self._collection("project"), queries)
        return DirectoryResult(
            projects=[Project.from_document(d) for d in data["documents"]],
            total=data["total"]
        )
