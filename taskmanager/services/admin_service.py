"""
Operaciones de administración: gestión de usuarios y estadísticas del sistema.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from taskmanager.api.schemas.common import Page
from taskmanager.api.schemas.task import iso_z
from taskmanager.api.schemas.user import AdminUserUpdate, user_out
from taskmanager.core.result import Ok, Result, conflict, not_found, validation
from taskmanager.repositories import task_repo, user_repo
from taskmanager.services.container import Services
from taskmanager.services.task_service import invalidate_views

_log = logging.getLogger("taskmanager.admin")

USER_NOT_FOUND = "User not found"


def list_users(
    svc: Services,
    *,
    search: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 10,
) -> Result[Page]:
    filtro: Dict[str, Any] = {}
    if search:
        pattern = re.escape(search.strip())
        filtro["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]
    if role:
        filtro["role"] = role
    if is_active is not None:
        filtro["is_active"] = is_active

    docs, total = user_repo.list_users(svc.db, filtro, skip=(page - 1) * limit, limit=limit)
    return Ok(Page(items=[user_out(d) for d in docs], total=total, page=page, limit=limit))


def get_user(svc: Services, user_id: str) -> Result[Dict[str, Any]]:
    db = svc.db
    u = user_repo.get_user_by_id(db, user_id)
    if not u:
        return not_found(USER_NOT_FOUND)
    task_count = task_repo.count_tasks(db, {"user_id": str(u["_id"])})
    return Ok({"user": {**user_out(u), "taskCount": task_count}})


def update_user(svc: Services, principal: Dict[str, Any], user_id: str, payload: AdminUserUpdate) -> Result[Dict[str, Any]]:
    db = svc.db
    u = user_repo.get_user_by_id(db, user_id)
    if not u:
        return not_found(USER_NOT_FOUND)

    data = payload.model_dump(exclude_unset=True)
    updates: Dict[str, Any] = {}
    if data.get("name"):
        updates["name"] = data["name"]
    if data.get("email") and data["email"] != u.get("email"):
        if user_repo.email_taken(db, data["email"], exclude_id=user_id):
            return conflict("Email already in use")
        updates["email"] = data["email"]
    if data.get("role"):
        updates["role"] = data["role"]
    if data.get("is_active") is not None:
        updates["is_active"] = data["is_active"]

    doc = user_repo.update_user(db, user_id, updates) if updates else u
    # Rol, estado o nombre alteran lo que ven el usuario (scope) y los admins (dueño)
    invalidate_views(svc, user_id)
    _log.info("User updated by admin: %s by %s", doc["email"], principal.get("email"))
    return Ok({"user": user_out(doc)})


def delete_user(svc: Services, principal: Dict[str, Any], user_id: str) -> Result[None]:
    if str(principal["id"]) == str(user_id):
        return validation("Cannot delete your own account")

    db = svc.db
    u = user_repo.get_user_by_id(db, user_id)
    if not u:
        return not_found(USER_NOT_FOUND)

    removed = task_repo.delete_tasks_by_user(db, user_id)
    user_repo.delete_user(db, user_id)
    invalidate_views(svc, user_id, principal["id"])
    _log.info("User deleted by admin: %s (%s tasks) by %s", u["email"], removed, principal.get("email"))
    return Ok(None)


def system_stats(svc: Services) -> Result[Dict[str, Any]]:
    db = svc.db
    week_ago = iso_z(datetime.now(timezone.utc) - timedelta(days=7))

    total_users = user_repo.count_users(db)
    active_users = user_repo.count_users(db, {"is_active": True})
    admins = user_repo.count_users(db, {"role": "admin"})

    return Ok({
        "users": {
            "total": total_users,
            "active": active_users,
            "inactive": total_users - active_users,
            "admins": admins,
            "regular": total_users - admins,
            "recentlyJoined": user_repo.count_users(db, {"created_at": {"$gte": week_ago}}),
        },
        "tasks": {
            "total": task_repo.count_tasks(db),
            "pending": task_repo.count_tasks(db, {"status": "pending"}),
            "inProgress": task_repo.count_tasks(db, {"status": "in-progress"}),
            "completed": task_repo.count_tasks(db, {"status": "completed"}),
        },
    })
