"""
REST client for the task management API.

One requests.Session per client, configured with a base URL and, once a
user is logged in, an ``Authorization: Bearer`` header. Every call goes
through ``_request``, which maps transport failures and HTTP errors onto
the exception taxonomy in errors.py.

Responses normally come wrapped as ``{success, data, message}``; a bare
payload without the envelope is accepted as well.
"""
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import requests

from .errors import ApiError, AuthenticationError, NetworkError, ValidationError, error_for_status
from .schema import Project, Task, TaskStatus, User

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTH_ENTRY_PATHS = ("/auth/login", "/auth/register")


def unwrap(body: Any) -> Any:
    """Return the ``data`` of an enveloped response, or the bare payload itself."""
    if isinstance(body, dict) and body.get("data") is not None:
        return body["data"]
    return body


def error_message(body: Any, default: str) -> str:
    """Pick the user-facing message out of an error body."""
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            parts = [
                str(e.get("message", e)) if isinstance(e, dict) else str(e)
                for e in errors
            ]
            return ", ".join(parts)
        if body.get("message"):
            return str(body["message"])
        if body.get("error"):
            return str(body["error"])
    return default


def parse_one(cls: Type[T], payload: Any) -> T:
    """Parse a single record. A record the client cannot understand is an ApiError."""
    record = unwrap(payload)
    try:
        return cls.from_dict(record)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Unreadable {cls.__name__} record in response: {e}")
        raise ApiError(f"Unexpected {cls.__name__.lower()} data from server: {e}", payload=payload) from e


def parse_many(cls: Type[T], payload: Any) -> List[T]:
    """Parse a collection, skipping records the client cannot understand."""
    items = unwrap(payload)
    if not isinstance(items, list):
        logger.warning(f"Expected a list of {cls.__name__} records, got {type(items).__name__}")
        return []
    result = []
    for item in items:
        try:
            result.append(cls.from_dict(item))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed {cls.__name__} record: {e}")
    return result


class ApiClient:
    """Thin wrapper over requests.Session for the taskboard REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session if session is not None else requests.Session()
        # Called when the server rejects the attached credential
        self.on_unauthorized: Optional[Callable[[], None]] = None

    # ──────────────────────────────────────────
    # Credential handling
    # ──────────────────────────────────────────

    def set_credential(self, token: str) -> None:
        self.http.headers["Authorization"] = f"Bearer {token}"

    def clear_credential(self) -> None:
        self.http.headers.pop("Authorization", None)

    @property
    def has_credential(self) -> bool:
        return "Authorization" in self.http.headers

    # ──────────────────────────────────────────
    # Core request path
    # ──────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (or None)."""
        url = f"{self.base_url}{path}"
        sent_credential = self.has_credential
        logger.debug(f"{method} {url} params={params}")

        try:
            resp = self.http.request(
                method,
                url,
                params=params,
                json=json,
                files=files,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise NetworkError(f"{method} {path} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise NetworkError(f"Cannot reach {self.base_url}: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = error_message(body, f"{method} {path} failed ({resp.status_code})")
            err = error_for_status(resp.status_code, message, body)
            logger.warning(f"{method} {path} → {resp.status_code}: {message}")
            # A 401 from login/register means bad credentials, not an expired session
            if (
                isinstance(err, AuthenticationError)
                and sent_credential
                and self.on_unauthorized
                and not path.startswith(AUTH_ENTRY_PATHS)
            ):
                self.on_unauthorized()
            raise err

        if isinstance(body, dict) and body.get("success") is False:
            message = error_message(body, f"{method} {path} was not successful")
            raise ApiError(message, status_code=resp.status_code, payload=body)

        return body

    def _multipart(
        self,
        method: str,
        path: str,
        fields: Dict[str, Any],
        attachment: Optional[str] = None,
    ) -> Any:
        """Send form fields (and an optional file) as multipart/form-data."""
        files: Dict[str, Any] = {
            key: (None, str(value))
            for key, value in fields.items()
            if value is not None
        }
        if not attachment:
            return self._request(method, path, files=files)

        attachment_path = Path(attachment).expanduser()
        try:
            fh = open(attachment_path, "rb")
        except OSError as e:
            raise ValidationError(f"Cannot read attachment {attachment}: {e.strerror or e}") from e
        with fh:
            files["attachment"] = (attachment_path.name, fh)
            return self._request(method, path, files=files)

    # ──────────────────────────────────────────
    # Auth
    # ──────────────────────────────────────────

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """POST /auth/login. Returns the raw body ({success, token, user})."""
        return self._request("POST", "/auth/login", json={"username": username, "password": password}) or {}

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        ) or {}

    def admin_register(self, payload: Dict[str, Any]) -> Any:
        """POST /auth/admin/register: an admin creates a user, optionally with a first task."""
        return unwrap(self._request("POST", "/auth/admin/register", json=payload))

    def list_users(self) -> List[User]:
        return parse_many(User, self._request("GET", "/auth/users"))

    def get_user(self, user_id: str) -> User:
        return parse_one(User, self._request("GET", f"/auth/users/{user_id}"))

    # ──────────────────────────────────────────
    # Tasks
    # ──────────────────────────────────────────

    def list_tasks(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> List[Task]:
        params = {}
        if status:
            params["status"] = status
        if search and search.strip():
            params["search"] = search.strip()
        if project_id:
            params["projectId"] = project_id
        return parse_many(Task, self._request("GET", "/tasks", params=params or None))

    def get_task(self, task_id: str) -> Task:
        return parse_one(Task, self._request("GET", f"/tasks/{task_id}"))

    def list_user_tasks(self, user_id: str) -> List[Task]:
        return parse_many(Task, self._request("GET", f"/tasks/user/{user_id}"))

    def list_task_users(self) -> List[User]:
        """Users visible through tasks; the non-admin assignee list."""
        return parse_many(User, self._request("GET", "/tasks/users"))

    def create_task(self, fields: Dict[str, Any], attachment: Optional[str] = None) -> Task:
        return parse_one(Task, self._multipart("POST", "/tasks", fields, attachment))

    def update_task(self, task_id: str, fields: Dict[str, Any], attachment: Optional[str] = None) -> Task:
        return parse_one(Task, self._multipart("PUT", f"/tasks/{task_id}", fields, attachment))

    def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        project_id: Optional[str] = None,
    ) -> Task:
        """PATCH /tasks/:id/status. The project reference rides along so the server keeps it."""
        payload: Dict[str, Any] = {"status": status.value}
        if project_id:
            payload["projectId"] = project_id
        return parse_one(Task, self._request("PATCH", f"/tasks/{task_id}/status", json=payload))

    def update_task_assignee(self, task_id: str, assignee_id: Optional[str]) -> Task:
        payload = {"assigneeId": assignee_id or ""}
        return parse_one(Task, self._request("PATCH", f"/tasks/{task_id}/assignee", json=payload))

    def delete_task(self, task_id: str) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    # ──────────────────────────────────────────
    # Projects
    # ──────────────────────────────────────────

    def list_projects(self) -> List[Project]:
        return parse_many(Project, self._request("GET", "/projects"))

    def create_project(self, title: str, description: str = "") -> Project:
        payload = {"title": title, "description": description}
        return parse_one(Project, self._request("POST", "/projects", json=payload))

    def update_project(self, project_id: str, title: str, description: str = "") -> Project:
        payload = {"title": title, "description": description}
        return parse_one(Project, self._request("PUT", f"/projects/{project_id}", json=payload))

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/projects/{project_id}")

    # ──────────────────────────────────────────
    # Static files
    # ──────────────────────────────────────────

    @property
    def origin(self) -> str:
        """The API origin: the base URL without its trailing ``/api``."""
        if self.base_url.endswith("/api"):
            return self.base_url[: -len("/api")]
        return self.base_url

    def attachment_url(self, path: Optional[str]) -> Optional[str]:
        """Absolute URL of an attachment referenced by relative path in a task."""
        if not path:
            return None
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.origin}/{path.lstrip('/')}"
