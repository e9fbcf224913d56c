"""Project list. Everyone can read; only admins create, edit or delete."""
import logging
from typing import Callable, List, Optional

from .cache import apply_server_record, find_record, remove_record
from .errors import ValidationError
from .forms import ProjectForm
from .schema import Project
from .view import ViewController

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Are you sure you want to delete this project?"


class ProjectController(ViewController):

    def __init__(self, client, session, notifier=None):
        super().__init__(client, session, notifier)
        self.projects: List[Project] = []
        self.editing: Optional[Project] = None
        self.edit_form: Optional[ProjectForm] = None

    def load(self) -> bool:
        self.loading = True
        ok, projects = self._call("Failed to load projects", self.client.list_projects)
        self.loading = False
        if ok:
            self.projects = projects
        return ok

    def _validated(self, form: ProjectForm) -> bool:
        try:
            form.validate()
        except ValidationError as e:
            self.error = str(e)
            self.notifier.error(self.error)
            return False
        return True

    def create(self, form: ProjectForm) -> Optional[Project]:
        if not self._require_admin("create projects") or not self._validated(form):
            return None
        ok, created = self._call(
            "Failed to create project", self.client.create_project, form.title.strip(), form.description
        )
        if not ok:
            return None
        self.projects = apply_server_record(self.projects, created)
        self.notifier.success("Project created successfully!")
        return created

    def start_edit(self, project_id: str) -> bool:
        project = find_record(self.projects, project_id)
        if project is None:
            self.error = f"Project {project_id} not found"
            self.notifier.error(self.error)
            return False
        self.editing = project
        self.edit_form = ProjectForm.from_project(project)
        return True

    def cancel_edit(self) -> None:
        self.editing = None
        self.edit_form = None

    def save_edit(self) -> Optional[Project]:
        if self.editing is None or self.edit_form is None:
            return None
        if not self._require_admin("edit projects") or not self._validated(self.edit_form):
            return None
        ok, updated = self._call(
            "Failed to update project",
            self.client.update_project,
            self.editing.id,
            self.edit_form.title.strip(),
            self.edit_form.description,
        )
        if not ok:
            return None
        self.projects = apply_server_record(self.projects, updated)
        self.cancel_edit()
        self.notifier.success("Project updated successfully!")
        return updated

    def delete(self, project_id: str, confirm: Callable[[str], bool]) -> bool:
        if not self._require_admin("delete projects"):
            return False
        if not confirm(DELETE_PROMPT):
            return False
        ok, _ = self._call("Failed to delete project", self.client.delete_project, project_id)
        if not ok:
            return False
        self.projects = remove_record(self.projects, project_id)
        logger.info(f"Deleted project {project_id}")
        self.notifier.success("Project deleted successfully!")
        return True
