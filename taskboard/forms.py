"""
Form drafts for tasks, projects and users.

Each draft starts from an empty template (create) or a copy of an existing
record (edit). Client-side validation is deliberately minimal; the server
owns uniqueness, permission and format checks. ``validate()`` raises
ValidationError with a user-facing message.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationError
from .schema import Project, Role, Task, TaskStatus

EMAIL_PATTERN = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
MIN_PASSWORD = 6
MIN_USERNAME = 3


@dataclass
class TaskForm:
    heading: str = ""
    description: str = ""
    project_id: Optional[str] = None
    assigned_to: Optional[str] = None
    status: Optional[TaskStatus] = None
    attachment: Optional[str] = None           # local file to upload
    existing_attachment: Optional[str] = None  # server path already on the task

    @classmethod
    def empty(cls) -> "TaskForm":
        return cls()

    @classmethod
    def from_task(cls, task: Task) -> "TaskForm":
        return cls(
            heading=task.heading,
            description=task.description,
            project_id=task.project_id,
            assigned_to=task.assigned_to,
            status=task.status,
            existing_attachment=task.attachment,
        )

    def validate(self) -> None:
        if not self.heading.strip():
            raise ValidationError("Task heading is required")

    def to_payload(self, is_admin: bool) -> Dict[str, Any]:
        """Create payload. Only admins may pick an assignee."""
        payload: Dict[str, Any] = {
            "heading": self.heading,
            "description": self.description,
        }
        if self.project_id:
            payload["projectId"] = self.project_id
        if is_admin and self.assigned_to:
            payload["assignedTo"] = self.assigned_to
        if self.status:
            payload["status"] = self.status.value
        return payload

    def to_update_payload(self, original: Task, is_admin: bool) -> Dict[str, Any]:
        """
        Edit payload. Fields the form does not expose are re-sent from the
        original record so the server does not clear them.
        """
        payload = self.to_payload(is_admin)
        payload["status"] = (self.status or original.status).value
        if self.project_id == "":
            payload["projectId"] = ""  # explicit removal
        elif self.project_id is None and original.project_id:
            payload["projectId"] = original.project_id
        if not is_admin and original.assigned_to:
            payload["assignedTo"] = original.assigned_to
        if not self.attachment and (self.existing_attachment or original.attachment):
            payload["attachment"] = self.existing_attachment or original.attachment
        return payload


@dataclass
class ProjectForm:
    title: str = ""
    description: str = ""

    @classmethod
    def from_project(cls, project: Project) -> "ProjectForm":
        return cls(title=project.title, description=project.description)

    def validate(self) -> None:
        if not self.title.strip():
            raise ValidationError("Project title is required")


@dataclass
class UserForm:
    """Admin-side user creation, optionally with a first task."""

    username: str = ""
    email: str = ""
    password: str = ""
    role: Role = Role.USER
    project_id: str = ""

    assign_task: bool = False
    task_title: str = ""
    task_description: str = ""
    task_status: TaskStatus = TaskStatus.TO_DO
    task_project_id: str = ""

    def validate(self) -> None:
        if not self.username or not self.email or not self.password:
            raise ValidationError("All required fields must be filled out")
        if not re.fullmatch(EMAIL_PATTERN, self.email.strip()):
            raise ValidationError("Please enter a valid email address")
        if len(self.password) < MIN_PASSWORD:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD} characters long")
        if self.assign_task and not self.task_title.strip():
            raise ValidationError("Task title is required when assigning a task")

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "username": self.username.strip(),
            "email": self.email.strip(),
            "password": self.password,
            "role": self.role.value,
        }
        if self.project_id:
            payload["projectId"] = self.project_id
        if self.assign_task:
            payload["taskData"] = {
                "heading": self.task_title.strip(),
                "description": self.task_description.strip(),
                "status": self.task_status.value,
                "projectId": self.task_project_id or self.project_id,
            }
        return payload

    def summary(self, projects: Iterable[Project] = ()) -> List[str]:
        """Lines shown in the confirmation step before the user is created."""
        lines = [
            f"Username: {self.username}",
            f"Email: {self.email}",
            f"Role: {self.role.value}",
        ]
        if self.project_id:
            title = next((p.title for p in projects if p.id == self.project_id), self.project_id)
            lines.append(f"Project: {title}")
        if self.assign_task:
            lines.append(f"Task: {self.task_title}")
        return lines


@dataclass
class RegistrationForm:
    """Self-service sign-up."""

    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""

    def validate(self) -> None:
        username = self.username.strip()
        email = self.email.strip()
        if not username:
            raise ValidationError("Username is required")
        if len(username) < MIN_USERNAME:
            raise ValidationError(f"Username must be at least {MIN_USERNAME} characters long")
        if not email:
            raise ValidationError("Email is required")
        if "@" not in email or "." not in email:
            raise ValidationError("Please enter a valid email address")
        if len(self.password) < MIN_PASSWORD:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD} characters long")
        if self.password != self.confirm_password:
            raise ValidationError("Passwords do not match")
