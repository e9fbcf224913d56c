"""
Tests for the dashboard controller.

Covers:
    - load / filters sent to the server vs applied locally
    - stale responses dropped (last request wins)
    - create_task validation, refetch
    - update_status in-flight guard and server reconciliation
    - delete_task admin check and confirmation
    - stats
"""

from taskboard.config import Config
from taskboard.dashboard import DELETE_PROMPT, DashboardController, filter_tasks
from taskboard.forms import TaskForm
from taskboard.schema import Task, TaskStatus

from conftest import envelope, task_record, user_record


def controller(store, **config):
    return DashboardController(store.client, store, config=Config(**config))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Loading and filtering
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestLoad:

    def test_admin_load_fetches_users(self, admin, http):
        http.on("GET", "/tasks", envelope([task_record("t1")]))
        http.on("GET", "/projects", envelope([{"_id": "p1", "title": "Apollo"}]))
        http.on("GET", "/auth/users", envelope([user_record("u1", "alice")]))
        dash = controller(admin)
        dash.load()
        assert [t.id for t in dash.tasks] == ["t1"]
        assert dash.project_title("p1") == "Apollo"
        assert [u.username for u in dash.users] == ["alice"]

    def test_member_load_skips_users(self, member, http):
        http.on("GET", "/tasks", envelope([]))
        http.on("GET", "/projects", envelope([]))
        controller(member).load()
        assert http.calls_to("GET", "/auth/users") == []

    def test_failure_keeps_previous_list(self, member, http, notifier):
        http.on("GET", "/tasks", envelope([task_record("t1")]))
        dash = controller(member)
        dash.fetch_tasks()
        http.on("GET", "/tasks", {"message": "Database down"}, status=500)
        assert not dash.fetch_tasks()
        assert [t.id for t in dash.tasks] == ["t1"]
        assert dash.error == "Failed to load tasks: Database down"
        assert notifier.drain()[-1].level == "error"


class TestFilters:

    def test_server_filters_sent_as_params(self, member, http):
        http.on("GET", "/tasks", envelope([task_record("t1", status="DONE", project="p1")]))
        dash = controller(member)
        dash.set_filters(status=TaskStatus.DONE, search="report", project_id="p1")
        assert http.calls[-1].params == {"status": "DONE", "search": "report", "projectId": "p1"}
        assert [t.id for t in dash.tasks] == ["t1"]

    def test_unsupported_filters_applied_locally(self, member, http):
        http.on("GET", "/tasks", envelope([
            task_record("t1", heading="Quarterly report", status="DONE"),
            task_record("t2", heading="Quarterly report", status="TO_DO"),
            task_record("t3", heading="Hiring", status="DONE"),
        ]))
        dash = controller(member, server_filters=[])
        dash.set_filters(status=TaskStatus.DONE, search="REPORT")
        assert http.calls[-1].params is None
        assert [t.id for t in dash.tasks] == ["t1"]

    def test_filter_tasks_matches_description(self):
        tasks = [Task(id="a", heading="x", description="Budget review"), Task(id="b", heading="y")]
        assert [t.id for t in filter_tasks(tasks, search="budget")] == ["a"]

    def test_stale_response_dropped(self, member, http):
        dash = controller(member)
        calls = []

        def handler(call):
            calls.append(call.params)
            if len(calls) == 1:
                # A newer filter change lands while the first request is still out
                dash.set_filters(search="newer")
                return 200, envelope([task_record("old")])
            return 200, envelope([task_record("new")])

        http.on("GET", "/tasks", handler=handler)
        assert not dash.set_filters(search="older")
        assert [t.id for t in dash.tasks] == ["new"]
        assert dash.search_text == "newer"
        assert not dash.loading


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Mutations
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestCreate:

    def test_empty_heading_never_hits_network(self, member, http, notifier):
        dash = controller(member)
        assert dash.create_task(TaskForm(heading="  ")) is None
        assert http.calls == []
        assert notifier.drain()[-1].message == "Task heading is required"

    def test_create_then_refetch(self, member, http):
        http.on("POST", "/tasks", envelope(task_record("t9", heading="Draft plan")))
        http.on("GET", "/tasks", envelope([task_record("t9", heading="Draft plan")]))
        dash = controller(member)
        created = dash.create_task(TaskForm(heading="Draft plan", assigned_to="u2"))
        assert created.id == "t9"
        assert "assignedTo" not in http.calls_to("POST", "/tasks")[0].files
        assert len(http.calls_to("GET", "/tasks")) == 1
        assert [t.id for t in dash.tasks] == ["t9"]

    def test_server_rejection_reported(self, member, http):
        http.on("POST", "/tasks", {"message": "Project not found"}, status=404)
        dash = controller(member)
        assert dash.create_task(TaskForm(heading="x", project_id="gone")) is None
        assert dash.error == "Failed to create task: Project not found"


class TestUpdateStatus:

    def test_server_record_replaces_cached(self, member, http):
        http.on("GET", "/tasks", envelope([task_record("t1", project="p1"), task_record("t2")]))
        http.on("PATCH", "/tasks/t1/status", envelope(task_record("t1", status="IN_PROGRESS", project="p1")))
        dash = controller(member)
        dash.fetch_tasks()
        updated = dash.update_status("t1", TaskStatus.IN_PROGRESS)
        assert updated.status == TaskStatus.IN_PROGRESS
        assert dash.tasks[0].status == TaskStatus.IN_PROGRESS
        assert http.calls[-1].json == {"status": "IN_PROGRESS", "projectId": "p1"}
        assert not dash.is_updating("t1")

    def test_second_update_while_in_flight(self, member, http):
        dash = controller(member)
        nested = []

        def handler(call):
            nested.append(dash.update_status("t1", TaskStatus.DONE))
            return 200, envelope(task_record("t1", status="IN_PROGRESS"))

        http.on("PATCH", "/tasks/t1/status", handler=handler)
        dash.update_status("t1", TaskStatus.IN_PROGRESS)
        assert nested == [None]
        assert len(http.calls_to("PATCH", "/tasks/t1/status")) == 1

    def test_failure_leaves_cache(self, member, http):
        http.on("GET", "/tasks", envelope([task_record("t1")]))
        http.on("PATCH", "/tasks/t1/status", {"message": "Forbidden"}, status=403)
        dash = controller(member)
        dash.fetch_tasks()
        assert dash.update_status("t1", TaskStatus.DONE) is None
        assert dash.tasks[0].status == TaskStatus.TO_DO
        assert not dash.is_updating("t1")


class TestDelete:

    def test_member_cannot_delete(self, member, http):
        dash = controller(member)
        assert not dash.delete_task("t1", confirm=lambda _: True)
        assert http.calls == []
        assert dash.error == "Only administrators can delete tasks"

    def test_declined_confirmation(self, admin, http):
        http.on("GET", "/tasks", envelope([task_record("t1")]))
        dash = controller(admin)
        dash.fetch_tasks()
        prompts = []
        assert not dash.delete_task("t1", confirm=lambda msg: prompts.append(msg) or False)
        assert prompts == [DELETE_PROMPT]
        assert http.calls_to("DELETE", "/tasks/t1") == []
        assert [t.id for t in dash.tasks] == ["t1"]

    def test_confirmed_delete(self, admin, http, notifier):
        http.on("GET", "/tasks", envelope([task_record("t1"), task_record("t2")]))
        http.on("DELETE", "/tasks/t1", {"success": True, "message": "Deleted"})
        dash = controller(admin)
        dash.fetch_tasks()
        assert dash.delete_task("t1", confirm=lambda _: True)
        assert [t.id for t in dash.tasks] == ["t2"]
        assert notifier.drain()[-1].message == "Task deleted"

    def test_failed_delete_keeps_task(self, admin, http):
        http.on("GET", "/tasks", envelope([task_record("t1")]))
        http.on("DELETE", "/tasks/t1", {"message": "Server error"}, status=500)
        dash = controller(admin)
        dash.fetch_tasks()
        assert not dash.delete_task("t1", confirm=lambda _: True)
        assert [t.id for t in dash.tasks] == ["t1"]


def test_stats(member, http):
    http.on("GET", "/tasks", envelope([
        task_record("a", status="DONE"),
        task_record("b", status="DONE"),
        task_record("c", status="IN_PROGRESS"),
    ]))
    dash = controller(member)
    dash.fetch_tasks()
    assert dash.stats() == {TaskStatus.TO_DO: 0, TaskStatus.IN_PROGRESS: 1, TaskStatus.DONE: 2}


class TestUnreadableAttachment:

    def test_missing_file_reported_without_request(self, member, http, notifier):
        dash = controller(member)
        form = TaskForm(heading="x", attachment="/nonexistent/file.pdf")
        assert dash.create_task(form) is None
        assert http.calls_to("POST", "/tasks") == []
        assert dash.error.startswith("Failed to create task: Cannot read attachment /nonexistent/file.pdf")
        assert notifier.drain()[-1].level == "error"
