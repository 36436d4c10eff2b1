"""Wiring of the state layer for one app instance.

Each Workspace owns its own gateway, coordinator, project cache and teams
directory, so tests and apps never share state through module globals.
"""

from typing import Optional

from flowcraft.services.backend_client import BackendClient
from flowcraft.services.coordinator import StateCoordinator
from flowcraft.services.gateway import DataGateway
from flowcraft.services.memory_backend import MemoryBackend
from flowcraft.services.project_cache import ProjectCache
from flowcraft.services.selection_store import TeamSelectionStore
from flowcraft.services.teams_directory import TeamsDirectory


class Workspace:

    def __init__(self, backend, collections: Optional[dict] = None,
                 selection_store: Optional[TeamSelectionStore] = None,
                 viewer_id: Optional[str] = None, strict_sprints: bool = False,
                 invite_redirect_url: Optional[str] = None, now=None):
        self.backend = backend
        self.viewer_id = viewer_id
        self.gateway = DataGateway(backend, collections, now=now)
        self.coordinator = StateCoordinator(
            self.gateway,
            selection_store=selection_store,
            strict_sprints=strict_sprints
        )
        self.projects = ProjectCache(self.coordinator, self.gateway, viewer_id=viewer_id)
        self.teams = TeamsDirectory(backend, invite_redirect_url=invite_redirect_url)

    @classmethod
    def from_config(cls, config) -> "Workspace":
        if config["BACKEND"] == "memory":
            backend = MemoryBackend()
        elif config["BACKEND"] == "appwrite":
            backend = BackendClient(
                endpoint=config["ENDPOINT"],
                project_id=config["PROJECT_ID"],
                database_id=config["DATABASE_ID"],
                api_key=config.get("API_KEY"),
                timeout=config["REQUEST_TIMEOUT"]
            )
        else:
            raise ValueError(f"Unknown backend: {config['BACKEND']}")

        selection_file = config.get("SELECTION_FILE")
        return cls(
            backend,
            collections=config.get("COLLECTIONS"),
            selection_store=TeamSelectionStore(selection_file) if selection_file else None,
            viewer_id=config.get("USER_ID"),
            strict_sprints=bool(config.get("STRICT_SPRINTS")),
            invite_redirect_url=config.get("INVITE_REDIRECT_URL")
        )
