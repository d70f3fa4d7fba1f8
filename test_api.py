from datetime import timedelta

from fastapi.testclient import TestClient

from todolist.main import app
from todolist.models import Comment, Subtask, Tag, Task

from conftest import NOW


def _create(client, **body):
    body.setdefault("title", "Write report")
    response = client.post("/api/todos", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "healthy"}


def test_requires_session(client):
    anonymous = TestClient(app)
    assert anonymous.get("/api/stats").status_code == 401
    assert anonymous.get("/api/todos").status_code == 401

    bad = TestClient(app, headers={"Authorization": "Bearer not-a-token"})
    assert bad.get("/api/stats").status_code == 401


def test_session_cookie_is_accepted(client):
    token = client.headers["Authorization"].split(" ", 1)[1]
    cookie_client = TestClient(app, cookies={"token": token})

    response = cookie_client.get("/api/auth/session")
    assert response.json()["user"]["username"] == "octocat"


def test_create_task_records_daily_stat(client):
    task = _create(client, priority=2, estimated_minutes=30)

    assert task["status"] == "todo"
    assert task["completed"] is False
    assert task["progress"] == 0

    stats = client.get("/api/stats").json()
    assert stats["totalTodos"] == 1
    assert stats["recentDays"][0]["date"] == "2024-03-15"
    assert stats["recentDays"][0]["createdCount"] == 1
    assert stats["byPriority"] == [{"priority": 2, "count": 1}]


def test_blank_title_is_rejected(client):
    assert client.post("/api/todos", json={"title": "   "}).status_code == 400


def test_completing_a_task(client):
    task = _create(client)

    updated = client.patch(f"/api/todos/{task['id']}", json={"completed": True}).json()
    assert updated["completed"] is True
    assert updated["completed_at"].startswith("2024-03-15T12:00")

    # Completing again does not double count.
    client.patch(f"/api/todos/{task['id']}", json={"completed": True})

    stats = client.get("/api/stats").json()
    assert stats["completedToday"] == 1
    assert stats["completedThisWeek"] == 1
    assert stats["streak"] == 1
    assert stats["recentDays"][0]["completedCount"] == 1


def test_status_done_completes_and_reopening_resets_status(client):
    task = _create(client)

    done = client.patch(f"/api/todos/{task['id']}", json={"status": "done"}).json()
    assert done["completed"] is True
    assert done["completed_at"] is not None

    reopened = client.patch(f"/api/todos/{task['id']}", json={"completed": False}).json()
    assert reopened["completed"] is False
    assert reopened["completed_at"] is None
    assert reopened["status"] == "todo"


def test_done_status_and_completed_flag_count_once(client):
    task = _create(client)

    done = client.patch(f"/api/todos/{task['id']}", json={"status": "done", "completed": True}).json()
    assert done["status"] == "done"
    assert done["completed"] is True

    stats = client.get("/api/stats").json()
    assert stats["completedToday"] == 1
    assert stats["recentDays"][0]["completedCount"] == 1


def test_update_replaces_tags_with_owned_ones_only(client, db, user, other_user):
    first = Tag(user_id=user.id, name="errands")
    second = Tag(user_id=user.id, name="home")
    theirs = Tag(user_id=other_user.id, name="work")
    db.add_all([first, second, theirs])
    db.commit()

    task = _create(client, tag_ids=[first.id])
    assert [t["name"] for t in task["tags"]] == ["errands"]

    updated = client.patch(f"/api/todos/{task['id']}", json={"tag_ids": [second.id, theirs.id]}).json()
    assert [t["name"] for t in updated["tags"]] == ["home"]

    untouched = client.patch(f"/api/todos/{task['id']}", json={"priority": 2}).json()
    assert [t["name"] for t in untouched["tags"]] == ["home"]


def test_blank_title_update_is_rejected(client):
    task = _create(client)

    response = client.patch(f"/api/todos/{task['id']}", json={"title": "  "})
    assert response.status_code == 400
    assert client.get(f"/api/todos/{task['id']}").json()["title"] == "Write report"

    renamed = client.patch(f"/api/todos/{task['id']}", json={"title": "  Final report "}).json()
    assert renamed["title"] == "Final report"


def test_partial_update_distinguishes_null_from_absent(client):
    task = _create(client, description="draft", estimated_minutes=15)

    updated = client.patch(f"/api/todos/{task['id']}", json={"description": None, "priority": 3}).json()

    assert updated["description"] is None
    assert updated["priority"] == 3
    assert updated["title"] == "Write report"
    assert updated["estimated_minutes"] == 15


def test_missing_task_is_404(client, other_user, make_task):
    theirs = make_task(other_user)

    assert client.get(f"/api/todos/{theirs.id}").status_code == 404
    assert client.patch(f"/api/todos/{theirs.id}", json={"title": "x"}).status_code == 404
    assert client.delete("/api/todos/nope").status_code == 404


def test_listing_filters_and_order(client, db, user, make_task):
    tag = Tag(user_id=user.id, name="work")
    db.add(tag)
    db.commit()

    low = _create(client, title="Low", priority=0)
    late = _create(client, title="High late", priority=3, due_date="2024-03-30T00:00:00")
    soon = _create(client, title="High soon", priority=3, due_date="2024-03-20T00:00:00", tag_ids=[tag.id])
    undated = _create(client, title="High undated", priority=3, description="grocery list")
    make_task(user, title="Old", archived=True)

    titles = [t["title"] for t in client.get("/api/todos").json()]
    assert titles == ["High soon", "High late", "High undated", "Low"]

    assert [t["id"] for t in client.get("/api/todos", params={"tag_id": tag.id}).json()] == [soon["id"]]
    assert [t["id"] for t in client.get("/api/todos", params={"search": "grocery"}).json()] == [undated["id"]]
    assert [t["id"] for t in client.get("/api/todos", params={"priority": 0}).json()] == [low["id"]]
    assert [t["id"] for t in client.get("/api/todos", params={"due_after": "2024-03-25T00:00:00"}).json()] == [late["id"]]
    assert [t["title"] for t in client.get("/api/todos", params={"archived": "true"}).json()] == ["Old"]

    client.patch(f"/api/todos/{low['id']}", json={"status": "doing"})
    assert [t["id"] for t in client.get("/api/todos", params={"status": "doing"}).json()] == [low["id"]]


def test_progress_from_subtasks(client, db, user, make_task):
    task = make_task(user)
    db.add_all([
        Subtask(task_id=task.id, title="a", completed=True, sort_order=1),
        Subtask(task_id=task.id, title="b", sort_order=2),
        Subtask(task_id=task.id, title="c", sort_order=3),
    ])
    db.commit()

    data = client.get(f"/api/todos/{task.id}").json()
    assert data["progress"] == 33
    assert [s["title"] for s in data["subtasks"]] == ["a", "b", "c"]


def test_delete_cascades_to_children(client, db, user, make_task):
    task = make_task(user)
    db.add(Subtask(task_id=task.id, title="a"))
    db.add(Comment(task_id=task.id, user_id=user.id, content="hi"))
    db.commit()
    task_id = task.id

    assert client.delete(f"/api/todos/{task_id}").json() == {"success": True}

    db.expire_all()
    assert db.query(Task).filter(Task.id == task_id).first() is None
    assert db.query(Subtask).filter(Subtask.task_id == task_id).count() == 0
    assert db.query(Comment).filter(Comment.task_id == task_id).count() == 0


def test_share_and_unshare(client, db, user, other_user, make_task):
    task = make_task(user, title="Shared plan")
    db.add(Comment(task_id=task.id, user_id=other_user.id, content="Looks good"))
    db.commit()

    link = client.post(f"/api/todos/{task.id}/share").json()
    assert len(link["share_token"]) == 32
    assert link["share_url"].endswith(f"/share/{link['share_token']}")
    assert client.post(f"/api/todos/{task.id}/share").json()["share_token"] == link["share_token"]

    public = TestClient(app).get(f"/share/{link['share_token']}").json()
    assert public["title"] == "Shared plan"
    assert public["username"] == "octocat"
    assert public["comments"][0]["username"] == "hubot"

    assert client.delete(f"/api/todos/{task.id}/share").json() == {"success": True}
    assert TestClient(app).get(f"/share/{link['share_token']}").status_code == 404


def test_summary_endpoint_is_permissive(client):
    _create(client)

    default = client.get("/api/stats/summary").json()
    assert default["range"] == {"start": "2024-03-09", "end": "2024-03-15", "days": 7}
    assert default["totals"]["createdCount"] == 1
    assert default["perDay"][-1]["createdCount"] == 1

    assert client.get("/api/stats/summary", params={"days": "0"}).json()["range"]["days"] == 1
    assert client.get("/api/stats/summary", params={"days": "lots"}).json()["range"]["days"] == 7
    bad_start = client.get("/api/stats/summary", params={"start": "03/01/2024", "days": "2"}).json()
    assert bad_start["range"]["start"] == "2024-03-14"

    last_week = client.get("/api/stats/summary", params={"end": "9999-12-31"})
    assert last_week.status_code == 200
    assert last_week.json()["range"] == {"start": "9999-12-25", "end": "9999-12-31", "days": 7}
    first_day = client.get("/api/stats/summary", params={"end": "0001-01-01"})
    assert first_day.status_code == 200
    assert first_day.json()["range"]["end"] == "2024-03-15"


def test_root_reopens_due_repeating_tasks(client, db, user, make_task):
    task = make_task(
        user,
        repeat_type="daily",
        completed=True,
        completed_at=NOW - timedelta(days=2),
        status="done",
    )

    body = client.get("/").json()
    assert body["user"]["username"] == "octocat"
    assert body["reopened"] == [task.id]

    assert client.get(f"/api/todos/{task.id}").json()["status"] == "todo"
    assert client.get("/").json()["reopened"] == []


def test_root_without_session():
    assert TestClient(app).get("/").json() == {"message": "TodoList Pro API", "user": None}
