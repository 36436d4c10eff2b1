"""Domain models for issues, sprints and projects.

Each model translates to and from the backend document shape. Document keys
follow the backend collections (``$id``, ``teamId``, ``sprintTitle``...),
model attributes are snake_case.
"""

from dataclasses import dataclass, field, fields as dataclass_fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class IssueStatus(str, Enum):
    TODO = "Todo"
    IN_PROGRESS = "In Progress"
    IN_REVIEW = "In Review"
    DONE = "Done"


class SprintStatus(str, Enum):
    PLANNED = "Planned"
    ACTIVE = "Active"
    COMPLETED = "Completed"


class ProjectStatus(str, Enum):
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    AT_RISK = "At Risk"
    COMPLETED = "Completed"


DEFAULT_PRIORITY = 3
MIN_PRIORITY = 1
MAX_PRIORITY = 5

# Fields the backend manages itself; never sent on create/update
SYSTEM_FIELDS = {"id", "created_at", "updated_at"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a backend timestamp into an aware UTC datetime.

    Accepts datetimes as-is. Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        formats = [
            "%Y-%m-%dT%H:%M:%S.%f%z",  # With milliseconds and timezone
            "%Y-%m-%dT%H:%M:%S%z",      # Without milliseconds, with timezone
            "%Y-%m-%dT%H:%M:%S.%f",     # With milliseconds, no timezone
            "%Y-%m-%dT%H:%M:%S",        # Basic ISO format
            "%Y-%m-%d"                   # Date only
        ]
        parsed = None
        for fmt in formats:
            try:
                parsed = datetime.strptime(str(value), fmt)
                break
            except ValueError:
                continue

        if parsed is None:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime the way the backend stores it."""
    if value is None:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value}")
    value = parsed
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}+00:00"


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


class _Document:
    """Shared document translation for the dataclass models.

    Subclasses declare ``KEYS`` (attribute -> document key), ``TIMESTAMP_FIELDS``
    and ``ENUM_FIELDS`` (attribute -> enum class).
    """

    KEYS: dict = {}
    TIMESTAMP_FIELDS: tuple = ()
    ENUM_FIELDS: dict = {}

    @classmethod
    def from_document(cls, document: dict):
        values = {}
        for attr, key in cls.KEYS.items():
            if key not in document:
                continue
            value = document[key]
            if attr in cls.TIMESTAMP_FIELDS:
                value = parse_timestamp(value)
            elif attr in cls.ENUM_FIELDS and value is not None:
                value = cls.ENUM_FIELDS[attr](value)
            values[attr] = value
        return cls(**values)

    @classmethod
    def payload_from(cls, data: dict) -> dict:
        """Translate a (possibly partial) attribute dict into document keys.

        Only keys present in ``data`` are emitted, so the result is safe to
        use for partial updates. System-managed fields are dropped.
        """
        payload = {}
        for attr, value in data.items():
            if attr in SYSTEM_FIELDS or attr not in cls.KEYS:
                continue
            if attr in cls.TIMESTAMP_FIELDS:
                value = format_timestamp(value)
            elif attr in cls.ENUM_FIELDS and value is not None:
                value = cls.ENUM_FIELDS[attr](value).value
            payload[cls.KEYS[attr]] = value
        return payload

    def to_payload(self) -> dict:
        return self.payload_from({f.name: getattr(self, f.name) for f in dataclass_fields(self)})

    def to_dict(self) -> dict:
        """JSON-ready representation with camelCase keys."""
        result = {}
        for f in dataclass_fields(self):
            value = getattr(self, f.name)
            if f.name in self.TIMESTAMP_FIELDS:
                value = format_timestamp(value)
            key = "id" if f.name == "id" else self.KEYS[f.name].lstrip("$")
            result[key] = _enum_value(value)
        return result


@dataclass
class Issue(_Document):
    """Unit of trackable work inside a team."""

    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    status: IssueStatus = IssueStatus.TODO
    priority: int = DEFAULT_PRIORITY
    team_id: Optional[str] = None
    sprint_id: Optional[str] = None
    assigned_user_id: Optional[str] = None
    project_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    KEYS = {
        "id": "$id",
        "title": "title",
        "description": "description",
        "status": "status",
        "priority": "priority",
        "team_id": "teamId",
        "sprint_id": "sprintId",
        "assigned_user_id": "assignedUserId",
        "project_id": "projectId",
        "created_at": "$createdAt",
        "updated_at": "$updatedAt",
    }
    TIMESTAMP_FIELDS = ("created_at", "updated_at")
    ENUM_FIELDS = {"status": IssueStatus}

    @property
    def is_done(self) -> bool:
        return self.status == IssueStatus.DONE


@dataclass
class Sprint(_Document):
    """Fixed-date iteration bucket for a team's issues."""

    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    team_id: Optional[str] = None
    status: SprintStatus = SprintStatus.PLANNED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    KEYS = {
        "id": "$id",
        "title": "sprintTitle",
        "description": "sprintDescription",
        "start_date": "startDate",
        "end_date": "endDate",
        "team_id": "teamId",
        "status": "sprintStatus",
        "created_at": "$createdAt",
        "updated_at": "$updatedAt",
    }
    TIMESTAMP_FIELDS = ("start_date", "end_date", "created_at", "updated_at")
    ENUM_FIELDS = {"status": SprintStatus}


@dataclass
class Project(_Document):
    """Cross-sprint initiative, optionally team scoped and optionally private."""

    id: Optional[str] = None
    team_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PLANNED
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    is_private: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    KEYS = {
        "id": "$id",
        "team_id": "teamId",
        "name": "name",
        "description": "description",
        "owner_id": "ownerId",
        "owner_name": "ownerName",
        "status": "status",
        "start_date": "startDate",
        "due_date": "dueDate",
        "is_private": "isPrivate",
        "created_at": "$createdAt",
        "updated_at": "$updatedAt",
    }
    TIMESTAMP_FIELDS = ("start_date", "due_date", "created_at", "updated_at")
    ENUM_FIELDS = {"status": ProjectStatus}

    def is_visible_to(self, viewer_id: Optional[str]) -> bool:
        """Non-private projects are visible to everyone, private ones to their owner."""
        if not self.is_private:
            return True
        return viewer_id is not None and self.owner_id == viewer_id


@dataclass
class ProjectBucket:
    """Per-team cached slice of project data."""

    projects: list = field(default_factory=list)
    assignments: dict = field(default_factory=dict)


ENTITY_MODELS = {
    "issue": Issue,
    "sprint": Sprint,
    "project": Project,
}
