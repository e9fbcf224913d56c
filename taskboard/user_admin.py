"""
User administration (admin only).

Search and role filter are applied client-side with AND semantics and
recomputed on every change; pagination is a plain slice of the filtered
list and returns to page 1 whenever a filter changes. Creating a user goes
through a confirmation step that shows what is about to be submitted.
"""
import logging
import math
from typing import Iterable, List, Optional, Sequence, TypeVar

from .errors import ValidationError
from .forms import UserForm
from .schema import Project, Task, User
from .view import ViewController

logger = logging.getLogger(__name__)

ALL_ROLES = "all"

T = TypeVar("T")


def filter_users(users: Iterable[User], search: str = "", role: str = ALL_ROLES) -> List[User]:
    """Case-insensitive substring match on username or email, AND role."""
    needle = (search or "").lower()
    result = []
    for user in users:
        matches_search = (
            not needle
            or needle in user.username.lower()
            or needle in user.email.lower()
        )
        matches_role = role in ("", ALL_ROLES, None) or user.role.value == role
        if matches_search and matches_role:
            result.append(user)
    return result


def paginate(items: Sequence[T], page: int, per_page: int) -> List[T]:
    """Page k (1-based) holds items[(k-1)*P : min(k*P, N)]."""
    if page < 1 or per_page < 1:
        return []
    start = (page - 1) * per_page
    return list(items[start:start + per_page])


def page_count(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 0


class UserAdminController(ViewController):

    def __init__(self, client, session, notifier=None, per_page: int = 5):
        super().__init__(client, session, notifier)
        self.per_page = per_page
        self.users: List[User] = []
        self.projects: List[Project] = []

        self.search_term = ""
        self.role_filter = ALL_ROLES
        self.current_page = 1

        self.form = UserForm()
        self.confirming = False

    def load(self) -> bool:
        if not self._require_admin("manage users"):
            return False
        self.loading = True
        ok, users = self._call("Error fetching users", self.client.list_users)
        self.loading = False
        if ok:
            self.users = users
            self.current_page = 1
        projects_ok, projects = self._call("Error fetching projects", self.client.list_projects)
        if projects_ok:
            self.projects = projects
        return ok

    # ──────────────────────────────────────────
    # Filtering and pagination
    # ──────────────────────────────────────────

    @property
    def filtered(self) -> List[User]:
        return filter_users(self.users, self.search_term, self.role_filter)

    def set_search(self, term: str) -> None:
        self.search_term = term or ""
        self.current_page = 1

    def set_role_filter(self, role: str) -> None:
        self.role_filter = role or ALL_ROLES
        self.current_page = 1

    @property
    def pages(self) -> int:
        return page_count(len(self.filtered), self.per_page)

    @property
    def page_items(self) -> List[User]:
        return paginate(self.filtered, self.current_page, self.per_page)

    def go_to_page(self, page: int) -> int:
        last = max(self.pages, 1)
        self.current_page = min(max(page, 1), last)
        return self.current_page

    # ──────────────────────────────────────────
    # Creation with confirmation
    # ──────────────────────────────────────────

    def submit(self, form: Optional[UserForm] = None) -> Optional[List[str]]:
        """Validate the draft and open the confirmation step. Returns its summary."""
        if form is not None:
            self.form = form
        try:
            self.form.validate()
        except ValidationError as e:
            self.error = str(e)
            return None
        self.error = ""
        self.confirming = True
        return self.confirmation_summary

    @property
    def confirmation_summary(self) -> List[str]:
        return self.form.summary(self.projects)

    def cancel(self) -> None:
        self.confirming = False

    def confirm(self) -> bool:
        """Submit the confirmed draft. No-op when nothing awaits confirmation."""
        if not self.confirming:
            return False
        if not self._require_admin("register users"):
            self.confirming = False
            return False
        payload = self.form.to_payload()
        self.loading = True
        try:
            ok, _ = self._call("Failed to register user", self.client.admin_register, payload)
        finally:
            self.loading = False
            self.confirming = False
        if not ok:
            return False
        logger.info(f"Registered user {payload['username']}")
        self.notifier.success(f"User {payload['username']} registered successfully!")
        self.form = UserForm()
        self.load()
        return True


class UserTasksController(ViewController):
    """One user's profile and tasks, for administrators."""

    def __init__(self, client, session, user_id: str, notifier=None):
        super().__init__(client, session, notifier)
        self.user_id = user_id
        self.user: Optional[User] = None
        self.tasks: List[Task] = []

    def load(self) -> bool:
        if not self._require_admin("view other users' tasks"):
            return False
        self.loading = True
        try:
            ok, user = self._call("Failed to fetch user details", self.client.get_user, self.user_id)
            if not ok:
                return False
            self.user = user
            ok, tasks = self._call("Failed to fetch user tasks", self.client.list_user_tasks, self.user_id)
            if ok:
                self.tasks = tasks
            return ok
        finally:
            self.loading = False
