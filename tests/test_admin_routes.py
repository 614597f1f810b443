"""
tests/test_admin_routes.py -- Integration tests for /api/admin/*.

Covers:
  - non-admins are refused with 403 naming their role
  - user listing filters and pagination
  - user detail with taskCount, update with email conflict
  - delete cascades to the user's tasks; admins cannot delete themselves
  - system statistics
"""

from __future__ import annotations

from conftest import auth, create_task, register

from taskmanager.repositories import task_repo


def test_non_admin_is_forbidden(client):
    token = register(client, "Usr", "usr@x.com")["accessToken"]
    resp = client.get("/api/admin/users", headers=auth(token))
    assert resp.status_code == 403
    assert resp.json() == {"success": False, "message": "User role 'user' is not authorized to access this route"}


def test_admin_requires_authentication(client):
    assert client.get("/api/admin/stats").status_code == 401


def test_list_users_filters_and_paginates(client):
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    register(client, "Alice Smith", "alice@x.com")
    register(client, "Bob Jones", "bob@x.com")

    body = client.get("/api/admin/users", headers=auth(admin)).json()
    assert body["message"] == "Users retrieved successfully"
    assert body["pagination"]["total"] == 3
    assert all("passwordHash" not in u and "refreshTokenHash" not in u for u in body["data"])

    body = client.get("/api/admin/users", params={"search": "smith"}, headers=auth(admin)).json()
    assert [u["email"] for u in body["data"]] == ["alice@x.com"]

    body = client.get("/api/admin/users", params={"role": "admin"}, headers=auth(admin)).json()
    assert [u["email"] for u in body["data"]] == ["root@x.com"]

    body = client.get("/api/admin/users", params={"limit": 2, "page": 2}, headers=auth(admin)).json()
    assert len(body["data"]) == 1
    assert body["pagination"]["totalPages"] == 2


def test_list_users_by_active_flag(client):
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    user_id = register(client, "Idle", "idle@x.com")["user"]["id"]
    client.put(f"/api/admin/users/{user_id}", json={"isActive": False}, headers=auth(admin))

    body = client.get("/api/admin/users", params={"isActive": "false"}, headers=auth(admin)).json()
    assert [u["id"] for u in body["data"]] == [user_id]


def test_get_user_includes_task_count(client):
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    user = register(client, "Busy", "busy@x.com")
    create_task(client, user["accessToken"])
    create_task(client, user["accessToken"])

    resp = client.get(f"/api/admin/users/{user['user']['id']}", headers=auth(admin))
    assert resp.status_code == 200
    data = resp.json()["data"]["user"]
    assert data["email"] == "busy@x.com"
    assert data["taskCount"] == 2


def test_get_unknown_and_malformed_user(client):
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    resp = client.get("/api/admin/users/0123456789abcdef01234567", headers=auth(admin))
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"

    resp = client.get("/api/admin/users/xyz", headers=auth(admin))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid ID format"


def test_update_user_role_and_email_conflict(client):
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    register(client, "Taken", "taken@x.com")
    user_id = register(client, "Promo", "promo@x.com")["user"]["id"]

    resp = client.put(f"/api/admin/users/{user_id}", json={"email": "taken@x.com"}, headers=auth(admin))
    assert resp.status_code == 409
    assert resp.json()["message"] == "Email already in use"

    resp = client.put(f"/api/admin/users/{user_id}", json={"role": "admin", "name": "Promoted"}, headers=auth(admin))
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["role"] == "admin"
    assert user["name"] == "Promoted"


def test_delete_user_cascades_tasks(client):
    """Deleting a principal leaves zero tasks with that owner id."""
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    doomed = register(client, "Gone", "gone@x.com")
    keeper = register(client, "Keep", "keep@x.com")
    create_task(client, doomed["accessToken"])
    create_task(client, doomed["accessToken"])
    create_task(client, keeper["accessToken"])

    resp = client.delete(f"/api/admin/users/{doomed['user']['id']}", headers=auth(admin))
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "User and associated tasks deleted successfully"}

    db = client.app.state.services.db
    assert task_repo.count_tasks(db, {"user_id": doomed["user"]["id"]}) == 0
    assert task_repo.count_tasks(db, {"user_id": keeper["user"]["id"]}) == 1

    # The deleted principal's token no longer authenticates
    assert client.get("/api/auth/me", headers=auth(doomed["accessToken"])).status_code == 401


def test_admin_cannot_delete_self(client):
    admin = register(client, "Root", "root@x.com", role="admin")
    resp = client.delete(f"/api/admin/users/{admin['user']['id']}", headers=auth(admin["accessToken"]))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot delete your own account"


def test_system_stats(client):
    admin = register(client, "Root", "root@x.com", role="admin")["accessToken"]
    user = register(client, "Usr", "usr@x.com")
    idle_id = register(client, "Idle", "idle@x.com")["user"]["id"]
    client.put(f"/api/admin/users/{idle_id}", json={"isActive": False}, headers=auth(admin))
    create_task(client, user["accessToken"])
    create_task(client, user["accessToken"], status="completed")

    resp = client.get("/api/admin/stats", headers=auth(admin))
    assert resp.status_code == 200
    assert resp.json()["message"] == "System statistics retrieved"
    assert resp.json()["data"] == {
        "users": {"total": 3, "active": 2, "inactive": 1, "admins": 1, "regular": 2, "recentlyJoined": 3},
        "tasks": {"total": 2, "pending": 1, "inProgress": 0, "completed": 1},
    }
