"""
Task, project, user and session records as seen by the client.

The server is authoritative for every field. Records are parsed leniently:
ids may arrive as ``_id`` or ``id``, and references (project, assignee,
creator) may be a bare id or a populated object.
"""
from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any, Tuple


class TaskStatus(Enum):
    """The three board columns, in display order."""
    TO_DO = "TO_DO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @property
    def label(self) -> str:
        return {
            TaskStatus.TO_DO: "To Do",
            TaskStatus.IN_PROGRESS: "In Progress",
            TaskStatus.DONE: "Done",
        }[self]

    @classmethod
    def from_str(cls, value: str) -> "TaskStatus":
        """Strict wire-value lookup. Raises ValueError for anything else."""
        return cls(value)

    @classmethod
    def parse(cls, value: str) -> "TaskStatus":
        """Accept loose user input: 'todo', 'in progress', 'in-progress', 'done'."""
        key = (value or "").strip().upper().replace("-", "_").replace(" ", "_")
        if key == "TODO":
            key = "TO_DO"
        try:
            return cls[key]
        except KeyError:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown status '{value}'. Allowed: {allowed}")


class Role(Enum):
    USER = "user"
    ADMIN = "admin"

    @classmethod
    def from_str(cls, value: str) -> "Role":
        try:
            return cls(value)
        except ValueError:
            return cls.USER


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 string → datetime. Returns None for empty or unparseable input."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def record_id(data: Dict[str, Any]) -> str:
    """Server ids come as ``_id`` (Mongo style) or ``id``."""
    value = data.get("_id") or data.get("id") or ""
    return str(value)


def _reference(value: Any, name_key: str) -> Tuple[Optional[str], str]:
    """Split a reference into (id, display name). Accepts an id or a populated object."""
    if value is None or value == "":
        return None, ""
    if isinstance(value, dict):
        ref = record_id(value) or None
        return ref, str(value.get(name_key, "") or "")
    return str(value), ""


@dataclass
class Task:
    """A unit of work on the board."""

    id: str
    heading: str
    description: str = ""
    status: TaskStatus = TaskStatus.TO_DO

    # References
    project_id: Optional[str] = None
    project_title: str = ""
    assigned_to: Optional[str] = None
    assigned_to_name: str = ""
    created_by: Optional[str] = None
    created_by_name: str = ""

    # Server-set timestamps
    created_date: Optional[datetime] = None
    in_progress_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    attachment: Optional[str] = None  # relative path under the API origin

    @property
    def short_id(self) -> str:
        return self.id[-6:].upper()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the server's field names."""
        return {
            "_id": self.id,
            "heading": self.heading,
            "description": self.description,
            "status": self.status.value,
            "projectId": self.project_id,
            "assignedTo": self.assigned_to,
            "createdBy": self.created_by,
            "createdDate": format_timestamp(self.created_date),
            "inProgressDate": format_timestamp(self.in_progress_date),
            "completionDate": format_timestamp(self.completion_date),
            "updatedAt": format_timestamp(self.updated_at),
            "attachment": self.attachment,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize a server record."""
        project_id, project_title = _reference(data.get("projectId"), "title")
        assigned_to, assigned_name = _reference(data.get("assignedTo"), "username")
        created_by, created_name = _reference(data.get("createdBy"), "username")

        return cls(
            id=record_id(data),
            heading=data.get("heading", "") or "",
            description=data.get("description", "") or "",
            status=TaskStatus.from_str(data.get("status") or "TO_DO"),
            project_id=project_id,
            project_title=project_title,
            assigned_to=assigned_to,
            assigned_to_name=assigned_name,
            created_by=created_by,
            created_by_name=created_name,
            created_date=parse_timestamp(data.get("createdDate") or data.get("createdAt")),
            in_progress_date=parse_timestamp(data.get("inProgressDate")),
            completion_date=parse_timestamp(data.get("completionDate")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            attachment=data.get("attachment") or None,
        )


@dataclass
class Project:
    """A named grouping of tasks. Admin-managed."""

    id: str
    title: str
    description: str = ""
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=record_id(data),
            title=data.get("title", "") or "",
            description=data.get("description", "") or "",
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass
class User:
    id: str
    username: str
    email: str = ""
    role: Role = Role.USER
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=record_id(data),
            username=data.get("username", "") or "",
            email=data.get("email", "") or "",
            role=Role.from_str(data.get("role", "user")),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass
class Session:
    """The authenticated identity plus its bearer credential."""

    user_id: str
    username: str
    role: Role
    credential: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def identity(self) -> Dict[str, Any]:
        """The identity half, as persisted under the ``user`` storage key."""
        return {"id": self.user_id, "username": self.username, "role": self.role.value}

    @classmethod
    def from_identity(cls, identity: Dict[str, Any], credential: str) -> "Session":
        return cls(
            user_id=record_id(identity),
            username=identity.get("username", "") or "",
            role=Role.from_str(identity.get("role", "user")),
            credential=credential,
        )
