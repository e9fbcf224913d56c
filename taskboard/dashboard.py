"""
Dashboard: the filtered task list.

Filters (status, free-text search, project) are sent to the server when it
accepts them (Config.server_filters); the rest are applied locally by
filter_tasks(). The server's answer is stored verbatim as the active list.
"""
import logging
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional

from .api import ApiClient
from .cache import PendingSet, RequestSequencer, apply_server_record, find_record, remove_record
from .config import Config
from .errors import ValidationError
from .events import Notifier
from .forms import TaskForm
from .schema import Project, Task, TaskStatus, User
from .session import SessionStore
from .view import ViewController

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Are you sure you want to delete this task?"


def filter_tasks(
    tasks: Iterable[Task],
    status: Optional[TaskStatus] = None,
    search: str = "",
    project_id: Optional[str] = None,
) -> List[Task]:
    """Client-side fallback for filters the server does not accept."""
    needle = (search or "").strip().lower()
    result = []
    for task in tasks:
        if status and task.status != status:
            continue
        if project_id and task.project_id != project_id:
            continue
        if needle and needle not in task.heading.lower() and needle not in task.description.lower():
            continue
        result.append(task)
    return result


class DashboardController(ViewController):
    """Task list with filters, creation, status updates and admin deletion."""

    def __init__(
        self,
        client: ApiClient,
        session: SessionStore,
        notifier: Optional[Notifier] = None,
        config: Optional[Config] = None,
    ):
        super().__init__(client, session, notifier)
        self.config = config or Config()

        self.tasks: List[Task] = []
        self.projects: List[Project] = []
        self.users: List[User] = []

        self.status_filter: Optional[TaskStatus] = None
        self.search_text = ""
        self.project_filter: Optional[str] = None

        self._fetches = RequestSequencer()
        self._updating = PendingSet()

    def load(self) -> None:
        self.fetch_tasks()
        self.fetch_projects()
        if self.session.is_admin:
            self.fetch_users()

    # ──────────────────────────────────────────
    # Fetching
    # ──────────────────────────────────────────

    def set_filters(
        self,
        status: Optional[TaskStatus] = None,
        search: str = "",
        project_id: Optional[str] = None,
    ) -> bool:
        self.status_filter = status
        self.search_text = search or ""
        self.project_filter = project_id or None
        return self.fetch_tasks()

    def fetch_tasks(self) -> bool:
        """Fetch with the current filters. A superseded response is dropped."""
        ticket = self._fetches.next()
        self.loading = True
        server = set(self.config.server_filters)

        ok, tasks = self._call(
            "Failed to load tasks",
            self.client.list_tasks,
            status=self.status_filter.value if self.status_filter and "status" in server else None,
            search=self.search_text if "search" in server else None,
            project_id=self.project_filter if "projectId" in server else None,
        )

        if not self._fetches.is_current(ticket):
            logger.debug(f"Discarding stale task list (ticket {ticket})")
            return False
        self.loading = False
        if not ok:
            return False

        self.tasks = filter_tasks(
            tasks,
            status=self.status_filter if "status" not in server else None,
            search=self.search_text if "search" not in server else "",
            project_id=self.project_filter if "projectId" not in server else None,
        )
        return True

    def fetch_projects(self) -> None:
        ok, projects = self._call("Failed to load projects", self.client.list_projects)
        if ok:
            self.projects = projects

    def fetch_users(self) -> None:
        ok, users = self._call("Failed to load users", self.client.list_users)
        if ok:
            self.users = users

    # ──────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────

    def create_task(self, form: TaskForm) -> Optional[Task]:
        """Validate, create, then refetch so the list honours the active filters."""
        try:
            form.validate()
        except ValidationError as e:
            self.error = str(e)
            self.notifier.error(self.error)
            return None

        ok, created = self._call(
            "Failed to create task",
            self.client.create_task,
            form.to_payload(self.session.is_admin),
            attachment=form.attachment,
        )
        if not ok:
            return None
        logger.info(f"Created task {created.id}")
        self.notifier.success(f"Task '{created.heading}' created")
        self.fetch_tasks()
        return created

    def update_status(self, task_id: str, status: TaskStatus) -> Optional[Task]:
        """Server-authoritative status change. A second update on the same task waits."""
        if not self._updating.begin(task_id):
            logger.info(f"Status update already in flight for {task_id}")
            return None
        current = find_record(self.tasks, task_id)
        try:
            ok, updated = self._call(
                "Failed to update task status",
                self.client.update_task_status,
                task_id,
                status,
                project_id=current.project_id if current else None,
            )
        finally:
            self._updating.end(task_id)
        if not ok:
            return None
        self.tasks = apply_server_record(self.tasks, updated)
        return updated

    def is_updating(self, task_id: str) -> bool:
        return task_id in self._updating

    def delete_task(self, task_id: str, confirm: Callable[[str], bool]) -> bool:
        """Admin only. Removes from the cache only after a confirmed, successful delete."""
        if not self._require_admin("delete tasks"):
            return False
        if not confirm(DELETE_PROMPT):
            return False
        ok, _ = self._call("Failed to delete task", self.client.delete_task, task_id)
        if not ok:
            return False
        self.tasks = remove_record(self.tasks, task_id)
        self.notifier.success("Task deleted")
        return True

    # ──────────────────────────────────────────
    # Derived views
    # ──────────────────────────────────────────

    def stats(self) -> Dict[TaskStatus, int]:
        counts = Counter(task.status for task in self.tasks)
        return {status: counts.get(status, 0) for status in TaskStatus}

    def project_title(self, project_id: Optional[str]) -> str:
        for project in self.projects:
            if project.id == project_id:
                return project.title
        return ""
