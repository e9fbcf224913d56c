#!/usr/bin/env python3
"""
Taskboard — command-line front end

Drives the screen controllers against the task management API and prints
their state as text. The session survives between invocations.

Usage:
    taskboard login alice                     # prompts for the password
    taskboard tasks --status IN_PROGRESS --search alpha
    taskboard board --project-title Apollo
    taskboard move 64f0c2a1b2c3d4e5f6a7b8c9 DONE
    taskboard users --role admin --page 2
    taskboard --api http://localhost:5000/api whoami
"""

import argparse
import getpass
import logging
import sys
from typing import Callable, List, Optional

from .api import ApiClient
from .config import Config
from .dashboard import DashboardController
from .errors import ConfigError, TaskboardError
from .events import Notice, Notifier
from .forms import ProjectForm, RegistrationForm, TaskForm, UserForm
from .kanban import KanbanController
from .projects import ProjectController
from .schema import Role, Task, TaskStatus
from .session import SessionStore
from .storage import FileStorage
from .task_detail import TaskDetailController
from .user_admin import UserAdminController, UserTasksController

logger = logging.getLogger("taskboard")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

COLUMN_WIDTH = 32


# ── Rendering ──────────────────────────────────────────────────────────────

def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 1] + "…"


def format_task_line(task: Task) -> str:
    parts = [f"{task.id}", f"[{task.status.label}]", task.heading]
    if task.project_title:
        parts.append(f"({task.project_title})")
    if task.assigned_to_name or task.assigned_to:
        parts.append(f"@{task.assigned_to_name or task.assigned_to}")
    return " ".join(parts)


def render_board(columns) -> List[str]:
    """Three columns side by side."""
    headers = [f"{status.label} ({len(tasks)})" for status, tasks in columns.items()]
    lines = ["".join(h.ljust(COLUMN_WIDTH) for h in headers).rstrip()]
    lines.append("".join(("-" * (COLUMN_WIDTH - 2)).ljust(COLUMN_WIDTH) for _ in headers).rstrip())
    depth = max((len(tasks) for tasks in columns.values()), default=0)
    for row in range(depth):
        cells = []
        for tasks in columns.values():
            cell = f"{tasks[row].short_id} {tasks[row].heading}" if row < len(tasks) else ""
            cells.append(_truncate(cell, COLUMN_WIDTH - 2).ljust(COLUMN_WIDTH))
        lines.append("".join(cells).rstrip())
    return lines


def _print_notice(notice: Notice) -> None:
    marker = {"success": "✓", "error": "✗", "warning": "!", "info": "·"}.get(notice.level, "·")
    print(f"{marker} {notice.message}")


def _prompt_confirm(assume_yes: bool) -> Callable[[str], bool]:
    def confirm(question: str) -> bool:
        if assume_yes:
            return True
        answer = input(f"{question} [y/N] ").strip().lower()
        return answer in ("y", "yes")
    return confirm


# ── Context ────────────────────────────────────────────────────────────────

class App:
    """Wires config, client, storage and session for one invocation."""

    def __init__(self, cfg: Config, client: Optional[ApiClient] = None, storage=None):
        self.cfg = cfg
        self.notifier = Notifier()
        self.client = client or ApiClient(cfg.api_url, timeout=cfg.request_timeout)
        self.storage = storage if storage is not None else FileStorage(cfg.session_path)
        self.session = SessionStore(self.client, self.storage, self.notifier)
        self.session.restore_session()

    def require_login(self) -> bool:
        if self.session.is_authenticated:
            return True
        print("Not logged in. Run: taskboard login USERNAME", file=sys.stderr)
        return False


# ── Commands ───────────────────────────────────────────────────────────────

def cmd_login(app: App, args) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    return EXIT_OK if app.session.login(args.username, password).success else EXIT_FAILED


def cmd_register(app: App, args) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    confirm = password if args.password is not None else getpass.getpass("Confirm password: ")
    result = app.session.register(RegistrationForm(args.username, args.email, password, confirm))
    if not result.success:
        print(result.message, file=sys.stderr)
    return EXIT_OK if result.success else EXIT_FAILED


def cmd_logout(app: App, args) -> int:
    app.session.logout()
    return EXIT_OK


def cmd_whoami(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    current = app.session.current
    print(f"{current.username} ({current.role.value}) @ {app.cfg.api_url}")
    return EXIT_OK


def cmd_tasks(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = DashboardController(app.client, app.session, app.notifier, app.cfg)
    status = TaskStatus.parse(args.status) if args.status else None
    if not view.set_filters(status=status, search=args.search or "", project_id=args.project):
        return EXIT_FAILED
    for task in view.tasks:
        print(format_task_line(task))
    counts = view.stats()
    print(" · ".join(f"{s.label}: {counts[s]}" for s in TaskStatus))
    return EXIT_OK


def cmd_show(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = TaskDetailController(app.client, app.session, args.task_id, app.notifier)
    if not view.load():
        return EXIT_FAILED
    task = view.task
    print(f"{task.heading}  [{task.status.label}]  ID: {task.short_id}")
    if task.project_title or task.project_id:
        print(f"Project:  {task.project_title or task.project_id}")
    print(f"Created by: {task.created_by_name or task.created_by or '-'}")
    print(f"Assigned to: {task.assigned_to_name or task.assigned_to or 'Unassigned'}")
    if task.description:
        print()
        print(task.description)
    print()
    for label, when in view.timeline():
        print(f"  {label:<12} {when.strftime('%Y-%m-%d %H:%M') if when else 'Not recorded'}")
    if view.attachment_url:
        print(f"Attachment: {view.attachment_url}")
    return EXIT_OK


def cmd_create(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = DashboardController(app.client, app.session, app.notifier, app.cfg)
    form = TaskForm(
        heading=args.heading,
        description=args.description or "",
        project_id=args.project,
        assigned_to=args.assign,
        attachment=args.attach,
    )
    created = view.create_task(form)
    if created is None:
        return EXIT_FAILED
    print(format_task_line(created))
    return EXIT_OK


def cmd_move(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    board = KanbanController(app.client, app.session, app.notifier)
    if not board.fetch_tasks():
        return EXIT_FAILED
    status = TaskStatus.parse(args.status)
    board.drag_start(args.task_id)
    mutation = board.drop(status)
    if mutation is None:
        current = board.column_of(args.task_id)
        return EXIT_OK if current == status else EXIT_FAILED
    if mutation.result is None:
        return EXIT_FAILED
    print(format_task_line(mutation.result))
    return EXIT_OK


def cmd_assign(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    board = KanbanController(app.client, app.session, app.notifier)
    if not board.fetch_tasks():
        return EXIT_FAILED
    updated = board.assign(args.task_id, args.user_id)
    if updated is None:
        return EXIT_FAILED
    print(format_task_line(updated))
    return EXIT_OK


def cmd_delete(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = DashboardController(app.client, app.session, app.notifier, app.cfg)
    ok = view.delete_task(args.task_id, _prompt_confirm(args.yes))
    return EXIT_OK if ok else EXIT_FAILED


def cmd_board(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    board = KanbanController(app.client, app.session, app.notifier)
    board.load(project_id=args.project, project_title=args.project_title)
    if board.error and not board.tasks:
        return EXIT_FAILED
    board.set_assignee_filter(args.assignee)
    for line in render_board(board.columns()):
        print(line)
    return EXIT_OK


def cmd_projects(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = ProjectController(app.client, app.session, app.notifier)
    if not view.load():
        return EXIT_FAILED
    for project in view.projects:
        line = f"{project.id}  {project.title}"
        if project.description:
            line += f" - {project.description}"
        print(line)
    return EXIT_OK


def cmd_project_add(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = ProjectController(app.client, app.session, app.notifier)
    created = view.create(ProjectForm(args.title, args.description or ""))
    return EXIT_OK if created else EXIT_FAILED


def cmd_project_edit(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = ProjectController(app.client, app.session, app.notifier)
    if not view.load() or not view.start_edit(args.project_id):
        return EXIT_FAILED
    if args.title is not None:
        view.edit_form.title = args.title
    if args.description is not None:
        view.edit_form.description = args.description
    return EXIT_OK if view.save_edit() else EXIT_FAILED


def cmd_project_delete(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = ProjectController(app.client, app.session, app.notifier)
    ok = view.delete(args.project_id, _prompt_confirm(args.yes))
    return EXIT_OK if ok else EXIT_FAILED


def cmd_users(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = UserAdminController(app.client, app.session, app.notifier, per_page=app.cfg.users_per_page)
    if not view.load():
        return EXIT_FAILED
    view.set_search(args.search or "")
    view.set_role_filter(args.role or "all")
    view.go_to_page(args.page)
    for user in view.page_items:
        print(f"{user.id}  {user.username:<20} {user.email:<30} {user.role.value}")
    print(f"Page {view.current_page}/{max(view.pages, 1)} · {len(view.filtered)} matching")
    return EXIT_OK


def cmd_user_add(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = UserAdminController(app.client, app.session, app.notifier, per_page=app.cfg.users_per_page)
    if not view.load():
        return EXIT_FAILED
    password = args.password if args.password is not None else getpass.getpass("Password for new user: ")
    form = UserForm(
        username=args.username,
        email=args.email,
        password=password,
        role=Role(args.role),
        project_id=args.project or "",
        assign_task=bool(args.task_title),
        task_title=args.task_title or "",
        task_description=args.task_description or "",
    )
    summary = view.submit(form)
    if summary is None:
        print(view.error, file=sys.stderr)
        return EXIT_FAILED
    print("Confirm new user:")
    for line in summary:
        print(f"  {line}")
    if not _prompt_confirm(args.yes)("Create this user?"):
        view.cancel()
        return EXIT_FAILED
    return EXIT_OK if view.confirm() else EXIT_FAILED


def cmd_user_tasks(app: App, args) -> int:
    if not app.require_login():
        return EXIT_FAILED
    view = UserTasksController(app.client, app.session, args.user_id, app.notifier)
    if not view.load():
        return EXIT_FAILED
    user = view.user
    print(f"{user.username} <{user.email}> ({user.role.value})")
    for task in view.tasks:
        print(f"  {format_task_line(task)}")
    if not view.tasks:
        print("  No tasks assigned")
    return EXIT_OK


# ── Argument parsing ───────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskboard", description="Task board client")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--api", help="API base URL (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in and store the session")
    p.add_argument("username")
    p.add_argument("--password")
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("register", help="Create an account and log in")
    p.add_argument("username")
    p.add_argument("email")
    p.add_argument("--password")
    p.set_defaults(func=cmd_register)

    p = sub.add_parser("logout", help="Forget the stored session")
    p.set_defaults(func=cmd_logout)

    p = sub.add_parser("whoami", help="Show the current session")
    p.set_defaults(func=cmd_whoami)

    p = sub.add_parser("tasks", help="List tasks")
    p.add_argument("--status")
    p.add_argument("--search")
    p.add_argument("--project")
    p.set_defaults(func=cmd_tasks)

    p = sub.add_parser("show", help="Show one task")
    p.add_argument("task_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("create", help="Create a task")
    p.add_argument("heading")
    p.add_argument("--description")
    p.add_argument("--project")
    p.add_argument("--assign", help="User id (admins only)")
    p.add_argument("--attach", help="File to attach")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("move", help="Move a task to another column")
    p.add_argument("task_id")
    p.add_argument("status")
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("assign", help="Assign a task (admins only)")
    p.add_argument("task_id")
    p.add_argument("user_id", nargs="?", default="")
    p.set_defaults(func=cmd_assign)

    p = sub.add_parser("delete", help="Delete a task (admins only)")
    p.add_argument("task_id")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("board", help="Show the kanban board")
    p.add_argument("--project", help="Project id")
    p.add_argument("--project-title", help="Project title")
    p.add_argument("--assignee", help="User id")
    p.set_defaults(func=cmd_board)

    p = sub.add_parser("projects", help="List projects")
    p.set_defaults(func=cmd_projects)

    p = sub.add_parser("project-add", help="Create a project (admins only)")
    p.add_argument("title")
    p.add_argument("--description")
    p.set_defaults(func=cmd_project_add)

    p = sub.add_parser("project-edit", help="Edit a project (admins only)")
    p.add_argument("project_id")
    p.add_argument("--title")
    p.add_argument("--description")
    p.set_defaults(func=cmd_project_edit)

    p = sub.add_parser("project-delete", help="Delete a project (admins only)")
    p.add_argument("project_id")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_project_delete)

    p = sub.add_parser("users", help="List users (admins only)")
    p.add_argument("--search")
    p.add_argument("--role", choices=["all", "user", "admin"])
    p.add_argument("--page", type=int, default=1)
    p.set_defaults(func=cmd_users)

    p = sub.add_parser("user-add", help="Register a user (admins only)")
    p.add_argument("username")
    p.add_argument("email")
    p.add_argument("--password")
    p.add_argument("--role", choices=["user", "admin"], default="user")
    p.add_argument("--project")
    p.add_argument("--task-title")
    p.add_argument("--task-description")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_user_add)

    p = sub.add_parser("user-tasks", help="Show a user's tasks (admins only)")
    p.add_argument("user_id")
    p.set_defaults(func=cmd_user_tasks)

    return parser


def main(argv: Optional[List[str]] = None, app: Optional[App] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = app.cfg if app else Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return EXIT_USAGE
    if args.api:
        cfg.api_url = args.api.rstrip("/")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    app = app or App(cfg)
    app.notifier.subscribe(_print_notice)
    try:
        return args.func(app, args)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE
    except TaskboardError as e:
        print(str(e), file=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
