"""
Single task view.

Status changes here are optimistic: the new status shows immediately and
is rolled back if the server refuses it.
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from .cache import Mutation
from .errors import TaskboardError, ValidationError
from .forms import TaskForm
from .schema import Task, TaskStatus
from .view import ViewController

logger = logging.getLogger(__name__)


class TaskDetailController(ViewController):

    def __init__(self, client, session, task_id: str, notifier=None):
        super().__init__(client, session, notifier)
        self.task_id = task_id
        self.task: Optional[Task] = None
        self.updating = False
        self.last_mutation: Optional[Mutation] = None

    def load(self) -> bool:
        self.loading = True
        ok, task = self._call("Failed to load task details", self.client.get_task, self.task_id)
        self.loading = False
        if ok:
            self.task = task
        return ok

    def update_status(self, status: TaskStatus) -> Optional[Mutation]:
        """Optimistic update with rollback. Ignored while another update is running or when nothing changes."""
        if self.task is None or self.updating or self.task.status == status:
            return None

        prior = self.task.status
        mutation = Mutation(self.task.id, f"status → {status.value}", prior=prior)
        self.last_mutation = mutation
        self.updating = True
        self.task = replace(self.task, status=status)
        try:
            updated = self.client.update_task_status(self.task.id, status, project_id=self.task.project_id)
        except TaskboardError as e:
            self.task = replace(self.task, status=prior)
            mutation.roll_back(e)
            self._report("Failed to update status", e)
        else:
            self.task = updated
            mutation.commit(updated)
            self.error = ""
        finally:
            self.updating = False
        return mutation

    def edit(self, form: TaskForm) -> Optional[Task]:
        """PUT the edited draft, re-sending fields the form does not show."""
        if self.task is None:
            return None
        try:
            form.validate()
        except ValidationError as e:
            self.error = str(e)
            self.notifier.error(self.error)
            return None
        payload = form.to_update_payload(self.task, self.session.is_admin)
        ok, updated = self._call(
            "Failed to update task",
            self.client.update_task,
            self.task.id,
            payload,
            attachment=form.attachment,
        )
        if not ok:
            return None
        self.task = updated
        self.notifier.success("Task updated")
        return updated

    def timeline(self) -> List[Tuple[str, Optional[datetime]]]:
        """
        (label, timestamp) entries. A status the task has reached without a
        recorded timestamp appears with None.
        """
        if self.task is None:
            return []
        task = self.task
        entries: List[Tuple[str, Optional[datetime]]] = [("Created", task.created_date)]
        if task.in_progress_date or task.status != TaskStatus.TO_DO:
            entries.append(("In Progress", task.in_progress_date))
        if task.completion_date or task.status == TaskStatus.DONE:
            entries.append(("Completed", task.completion_date))
        return entries

    @property
    def attachment_url(self) -> Optional[str]:
        return self.client.attachment_url(self.task.attachment) if self.task else None
