"""
Tests for the data model.

Covers:
    - TaskStatus strict and loose parsing, labels
    - Task.from_dict with bare ids, populated references, _id/id, timestamps
    - Project / User / Session parsing
"""

from datetime import datetime, timezone

import pytest

from taskboard.schema import Project, Role, Session, Task, TaskStatus, User


class TestTaskStatus:

    def test_wire_values(self):
        assert [s.value for s in TaskStatus] == ["TO_DO", "IN_PROGRESS", "DONE"]

    def test_from_str_rejects_unknown(self):
        with pytest.raises(ValueError):
            TaskStatus.from_str("ARCHIVED")

    @pytest.mark.parametrize("raw,expected", [
        ("todo", TaskStatus.TO_DO),
        ("to-do", TaskStatus.TO_DO),
        ("in progress", TaskStatus.IN_PROGRESS),
        ("IN_PROGRESS", TaskStatus.IN_PROGRESS),
        ("done", TaskStatus.DONE),
    ])
    def test_parse_loose_input(self, raw, expected):
        assert TaskStatus.parse(raw) == expected

    def test_parse_error_lists_allowed(self):
        with pytest.raises(ValueError, match="TO_DO, IN_PROGRESS, DONE"):
            TaskStatus.parse("blocked")

    def test_labels(self):
        assert TaskStatus.IN_PROGRESS.label == "In Progress"


class TestTaskFromDict:

    def test_bare_references(self):
        task = Task.from_dict({
            "_id": "t1",
            "heading": "Write docs",
            "status": "IN_PROGRESS",
            "projectId": "p1",
            "assignedTo": "u1",
            "createdBy": "u2",
        })
        assert task.id == "t1"
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.project_id == "p1"
        assert task.project_title == ""
        assert task.assigned_to == "u1"
        assert task.created_by == "u2"

    def test_populated_references_keep_names(self):
        task = Task.from_dict({
            "id": "t2",
            "heading": "Ship",
            "status": "DONE",
            "projectId": {"_id": "p9", "title": "Launch"},
            "assignedTo": {"_id": "u3", "username": "bob"},
        })
        assert task.id == "t2"
        assert task.project_id == "p9"
        assert task.project_title == "Launch"
        assert task.assigned_to == "u3"
        assert task.assigned_to_name == "bob"

    def test_missing_optional_fields(self):
        task = Task.from_dict({"_id": "t3", "heading": "Bare"})
        assert task.status == TaskStatus.TO_DO
        assert task.project_id is None
        assert task.assigned_to is None
        assert task.attachment is None
        assert task.completion_date is None

    def test_timestamps_parsed(self):
        task = Task.from_dict({
            "_id": "t4",
            "heading": "x",
            "status": "DONE",
            "createdDate": "2024-03-01T10:00:00Z",
            "completionDate": "2024-03-02T12:30:00.000Z",
        })
        assert task.created_date == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert task.completion_date.day == 2

    def test_bad_timestamp_is_none(self):
        task = Task.from_dict({"_id": "t5", "heading": "x", "createdDate": "yesterday"})
        assert task.created_date is None

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            Task.from_dict({"_id": "t6", "heading": "x", "status": "BLOCKED"})

    def test_to_dict_uses_server_names(self):
        task = Task(id="t7", heading="h", project_id="p1", status=TaskStatus.DONE)
        data = task.to_dict()
        assert data["_id"] == "t7"
        assert data["projectId"] == "p1"
        assert data["status"] == "DONE"

    def test_short_id(self):
        assert Task(id="64f0c2a1b2c3d4", heading="h").short_id == "B2C3D4"


class TestOtherRecords:

    def test_project(self):
        project = Project.from_dict({"_id": "p1", "title": "Apollo", "createdAt": "2024-01-01T00:00:00Z"})
        assert project.id == "p1"
        assert project.title == "Apollo"
        assert project.created_at.year == 2024

    def test_user_role(self):
        assert User.from_dict({"_id": "u", "username": "a", "role": "admin"}).is_admin
        assert User.from_dict({"_id": "u", "username": "a", "role": "weird"}).role == Role.USER

    def test_session_identity_roundtrip_keys(self):
        session = Session.from_identity({"id": "u1", "username": "alice", "role": "admin"}, "tok")
        assert session.is_admin
        assert session.identity() == {"id": "u1", "username": "alice", "role": "admin"}
