"""
Kanban board: three status columns and drag-and-drop moves.

Moves are server-confirmed: a card changes column only after the status
update succeeds. A failed update leaves the card where it was.
"""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .api import ApiClient
from .cache import Mutation, PendingSet, RequestSequencer, apply_server_record, find_record
from .errors import TaskboardError, ValidationError
from .events import Notifier
from .forms import TaskForm
from .schema import Project, Task, TaskStatus, User
from .session import SessionStore
from .view import ViewController

logger = logging.getLogger(__name__)


def partition_by_status(tasks: Iterable[Task]) -> Dict[TaskStatus, List[Task]]:
    """Group tasks into the three columns, keeping their input order."""
    columns: Dict[TaskStatus, List[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        if task.status in columns:
            columns[task.status].append(task)
    return columns


def keep_project_reference(updated: Task, previous: Task) -> Task:
    """Some servers drop projectId from the status response; keep what we had."""
    if updated.project_id is None and previous.project_id:
        return replace(updated, project_id=previous.project_id, project_title=previous.project_title)
    if updated.project_id == previous.project_id and not updated.project_title:
        return replace(updated, project_title=previous.project_title)
    return updated


class KanbanController(ViewController):
    """Board state: tasks, filters, the card being dragged, and the last move."""

    def __init__(self, client: ApiClient, session: SessionStore, notifier: Optional[Notifier] = None):
        super().__init__(client, session, notifier)
        self.tasks: List[Task] = []
        self.projects: List[Project] = []
        self.users: List[User] = []

        self.project_filter: Optional[str] = None
        self.assignee_filter: Optional[str] = None

        self.dragging: Optional[str] = None
        self.last_mutation: Optional[Mutation] = None

        self._fetches = RequestSequencer()
        self._moving = PendingSet()

    # ──────────────────────────────────────────
    # Loading
    # ──────────────────────────────────────────

    def load(self, project_id: Optional[str] = None, project_title: Optional[str] = None) -> None:
        """
        Fetch projects, users and tasks.

        project_id / project_title come from navigation (a link from the
        project list); a title is resolved against the fetched projects.
        """
        self.fetch_projects()
        self.fetch_users()
        if project_id:
            self.project_filter = project_id
        elif project_title:
            match = next((p for p in self.projects if p.title == project_title), None)
            if match:
                self.project_filter = match.id
            else:
                logger.info(f"No project titled '{project_title}', showing all tasks")
        self.fetch_tasks()

    def fetch_tasks(self) -> bool:
        ticket = self._fetches.next()
        self.loading = True
        ok, tasks = self._call("Failed to load tasks", self.client.list_tasks, project_id=self.project_filter)
        if not self._fetches.is_current(ticket):
            logger.debug(f"Discarding stale board (ticket {ticket})")
            return False
        self.loading = False
        if ok:
            self.tasks = tasks
        return ok

    def fetch_projects(self) -> None:
        ok, projects = self._call("Failed to load projects", self.client.list_projects)
        if ok:
            self.projects = projects

    def fetch_users(self) -> None:
        """Admins see every user; others see the users that appear on tasks."""
        fetch = self.client.list_users if self.session.is_admin else self.client.list_task_users
        ok, users = self._call("Failed to load users", fetch)
        if ok:
            self.users = users

    def set_project_filter(self, project_id: Optional[str]) -> bool:
        self.project_filter = project_id or None
        return self.fetch_tasks()

    def set_assignee_filter(self, user_id: Optional[str]) -> None:
        self.assignee_filter = user_id or None

    # ──────────────────────────────────────────
    # Columns
    # ──────────────────────────────────────────

    def visible_tasks(self) -> List[Task]:
        if not self.assignee_filter:
            return list(self.tasks)
        return [t for t in self.tasks if t.assigned_to == self.assignee_filter]

    def columns(self) -> Dict[TaskStatus, List[Task]]:
        return partition_by_status(self.visible_tasks())

    def column_of(self, task_id: str) -> Optional[TaskStatus]:
        task = find_record(self.tasks, task_id)
        return task.status if task else None

    # ──────────────────────────────────────────
    # Drag and drop
    # ──────────────────────────────────────────

    def drag_start(self, task_id: str) -> None:
        self.dragging = task_id

    def drag_cancel(self) -> None:
        self.dragging = None

    def drop(self, status: TaskStatus) -> Optional[Mutation]:
        """Drop the dragged card on a column."""
        task_id, self.dragging = self.dragging, None
        if not task_id:
            return None
        return self.move(task_id, status)

    def move(self, task_id: str, status: TaskStatus) -> Optional[Mutation]:
        """
        Change a task's status through the server.

        Returns the Mutation (COMMITTED or ROLLED_BACK), or None when
        nothing was sent: unknown task, same column, or a move already
        in flight for this task.
        """
        task = find_record(self.tasks, task_id)
        if task is None:
            self.error = f"Task {task_id} is not on the board"
            self.notifier.error(self.error)
            return None
        if task.status == status:
            return None
        if not self._moving.begin(task_id):
            logger.info(f"Move already in flight for {task_id}")
            return None

        mutation = Mutation(task_id, f"move to {status.value}", prior=task.status)
        self.last_mutation = mutation
        try:
            updated = self.client.update_task_status(task_id, status, project_id=task.project_id)
        except TaskboardError as e:
            mutation.roll_back(e)
            self._report("Failed to move task", e)
            return mutation
        finally:
            self._moving.end(task_id)

        updated = keep_project_reference(updated, task)
        self.tasks = apply_server_record(self.tasks, updated)
        mutation.commit(updated)
        self.error = ""
        logger.info(f"Moved {task_id} {task.status.value} → {updated.status.value}")
        return mutation

    def is_moving(self, task_id: str) -> bool:
        return task_id in self._moving

    # ──────────────────────────────────────────
    # Assignment and creation
    # ──────────────────────────────────────────

    def assign(self, task_id: str, assignee_id: Optional[str]) -> Optional[Task]:
        """Admin only. An empty assignee unassigns the task."""
        if not self._require_admin("assign tasks"):
            return None
        previous = find_record(self.tasks, task_id)
        ok, updated = self._call("Failed to assign task", self.client.update_task_assignee, task_id, assignee_id)
        if not ok:
            return None
        if previous:
            updated = keep_project_reference(updated, previous)
        self.tasks = apply_server_record(self.tasks, updated)
        return updated

    def create_task(self, form: TaskForm) -> Optional[Task]:
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
        self.tasks = apply_server_record(self.tasks, created)
        self.notifier.success(f"Task '{created.heading}' created")
        return created
