"""Error taxonomy for the FlowCraft state layer.

Every error carries the HTTP status the API layer answers with.
"""


class FlowCraftError(Exception):
    http_status = 500


class NoTeamSelectedError(FlowCraftError):
    """An operation needs an active team and none is selected."""

    http_status = 400

    def __init__(self, message: str = "Select a team first"):
        super().__init__(message)


class NoScopeError(FlowCraftError):
    """A project has neither a team nor the private flag."""

    http_status = 400

    def __init__(self, message: str = "Select a team or mark the project as private"):
        super().__init__(message)


class MissingIdError(FlowCraftError):
    """An edit was requested without the entity id."""

    http_status = 400

    def __init__(self, entity: str = "entity"):
        super().__init__(f"Cannot edit {entity} without an id")


class ProjectNotFoundError(FlowCraftError):
    http_status = 404

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ProjectAccessError(FlowCraftError):
    http_status = 403

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__("Access denied: This is a private project")


class SprintStateError(FlowCraftError):
    """Sprint status only moves forward: Planned -> Active -> Completed."""

    http_status = 409


class ActiveSprintConflictError(SprintStateError):
    def __init__(self, sprint_id: str, active_sprint_id: str):
        self.sprint_id = sprint_id
        self.active_sprint_id = active_sprint_id
        super().__init__(
            f"Cannot start sprint {sprint_id}: sprint {active_sprint_id} is already active"
        )


class RemoteError(FlowCraftError):
    """The backend could not be reached or rejected the request."""

    http_status = 502

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteFetchError(RemoteError):
    pass


class RemoteWriteError(RemoteError):
    pass


class RemoteNotFoundError(RemoteWriteError):
    http_status = 404
