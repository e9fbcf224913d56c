"""Shared test fixtures: a fake HTTP session, an API client on top of it, and sessions."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from taskboard.api import ApiClient
from taskboard.events import Notifier
from taskboard.session import SessionStore
from taskboard.storage import MemoryStorage

BASE_URL = "http://api.test/api"


def make_response(status: int = 200, body=None):
    """A requests.Response stand-in with status_code, ok and json()."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    if body is None:
        resp.json.side_effect = ValueError("No JSON body")
    else:
        resp.json.return_value = body
    return resp


def envelope(data, **extra):
    body = {"success": True, "data": data}
    body.update(extra)
    return body


def task_record(task_id, heading="Task", status="TO_DO", project=None, assignee=None, **extra):
    record = {"_id": task_id, "heading": heading, "description": "", "status": status}
    if project is not None:
        record["projectId"] = project
    if assignee is not None:
        record["assignedTo"] = assignee
    record.update(extra)
    return record


def user_record(user_id, username, role="user", email=None):
    return {
        "_id": user_id,
        "username": username,
        "email": email or f"{username}@example.com",
        "role": role,
    }


class FakeHttp:
    """
    Stands in for requests.Session.

    Routes (method, path) to canned bodies or handler callables and records
    every call together with the headers that were attached at the time.
    """

    def __init__(self):
        self.headers = {}
        self.routes = {}
        self.calls = []

    def on(self, method, path, body=None, status=200, raises=None, handler=None):
        self.routes[(method, path)] = SimpleNamespace(
            body=body, status=status, raises=raises, handler=handler
        )

    def request(self, method, url, params=None, json=None, files=None, timeout=None):
        assert url.startswith(BASE_URL), url
        path = url[len(BASE_URL):]
        call = SimpleNamespace(
            method=method,
            path=path,
            params=params,
            json=json,
            files=files,
            headers=dict(self.headers),
        )
        self.calls.append(call)

        route = self.routes.get((method, path))
        if route is None:
            return make_response(404, {"success": False, "message": f"No route {method} {path}"})
        if route.raises is not None:
            raise route.raises
        if route.handler is not None:
            status, body = route.handler(call)
            return make_response(status, body)
        return make_response(route.status, route.body)

    def calls_to(self, method, path):
        return [c for c in self.calls if c.method == method and c.path == path]


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def client(http):
    return ApiClient(BASE_URL, timeout=5, session=http)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(client, storage, notifier):
    return SessionStore(client, storage, notifier)


@pytest.fixture
def admin(store):
    store.set_auth_session("admin-token", {"_id": "u-admin", "username": "root", "role": "admin"})
    return store


@pytest.fixture
def member(store):
    store.set_auth_session("user-token", {"_id": "u-1", "username": "alice", "role": "user"})
    return store
