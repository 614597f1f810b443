"""
Service layer for tasks: filtros/orden/paginación, CRUD y estadísticas.

Cada escritura invalida la cache de respuestas del dueño de la tarea, del
principal que actuó y de los admins (sus listados y estadísticas son globales).
"""
import logging
import re
from typing import Any, Dict, List, Optional

from taskmanager.api.schemas.common import Page
from taskmanager.api.schemas.task import SORT_FIELDS, TaskCreate, TaskQuery, TaskStats, TaskUpdate, task_out
from taskmanager.core.result import Ok, Result
from taskmanager.repositories import task_repo, user_repo
from taskmanager.services.container import Services

_log = logging.getLogger("taskmanager.tasks")


def _scope(principal: Dict[str, Any]) -> Dict[str, Any]:
    """Usuarios normales sólo ven sus tareas; admins ven todas."""
    if principal.get("role") == "admin":
        return {}
    return {"user_id": str(principal["id"])}


def invalidate_views(svc: Services, *principal_ids: Optional[str]) -> int:
    """Invalida la cache de los principals indicados y de todos los admins."""
    if not svc.cache.enabled:
        return 0
    return svc.cache.invalidate_principal(*principal_ids, *user_repo.admin_ids(svc.db))


def present_many(svc: Services, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    owners = user_repo.get_users_by_ids(svc.db, [str(d.get("user_id")) for d in docs])
    return [task_out(d, owners.get(str(d.get("user_id")))) for d in docs]


def present(svc: Services, doc: Dict[str, Any]) -> Dict[str, Any]:
    return present_many(svc, [doc])[0]


def list_tasks(svc: Services, principal: Dict[str, Any], query: TaskQuery) -> Result[Page]:
    filtro = _scope(principal)
    if query.status:
        filtro["status"] = query.status
    if query.priority:
        filtro["priority"] = query.priority
    if query.search:
        pattern = re.escape(query.search.strip())
        filtro["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    if query.sort_by:
        sort = [(SORT_FIELDS[query.sort_by], 1 if query.order == "asc" else -1)]
    else:
        sort = [("created_at", -1)]

    skip = (query.page - 1) * query.limit
    docs, total = task_repo.list_tasks(svc.db, filtro, sort=sort, skip=skip, limit=query.limit)
    return Ok(Page(items=present_many(svc, docs), total=total, page=query.page, limit=query.limit))


def get_task(svc: Services, task: Dict[str, Any]) -> Result[Dict[str, Any]]:
    return Ok({"task": present(svc, task)})


def create_task(svc: Services, principal: Dict[str, Any], payload: TaskCreate) -> Result[Dict[str, Any]]:
    doc = task_repo.insert_task(svc.db, {**payload.to_doc(), "user_id": str(principal["id"])})
    invalidate_views(svc, principal["id"])
    _log.info("Task created: %s by user: %s", doc["_id"], principal.get("email"))
    return Ok({"task": present(svc, doc)})


def update_task(
    svc: Services, principal: Dict[str, Any], task: Dict[str, Any], payload: TaskUpdate
) -> Result[Dict[str, Any]]:
    doc = task_repo.update_task(svc.db, task, payload.to_updates())
    invalidate_views(svc, doc.get("user_id"), principal["id"])
    _log.info("Task updated: %s by user: %s", doc["_id"], principal.get("email"))
    return Ok({"task": present(svc, doc)})


def delete_task(svc: Services, principal: Dict[str, Any], task: Dict[str, Any]) -> Result[None]:
    task_repo.delete_task(svc.db, task["_id"])
    invalidate_views(svc, task.get("user_id"), principal["id"])
    _log.info("Task deleted: %s by user: %s", task["_id"], principal.get("email"))
    return Ok(None)


def task_stats(svc: Services, principal: Dict[str, Any]) -> Result[Dict[str, Any]]:
    base = _scope(principal)
    db = svc.db

    def count(**extra: str) -> int:
        return task_repo.count_tasks(db, {**base, **extra})

    stats = TaskStats(
        total=count(),
        pending=count(status="pending"),
        in_progress=count(status="in-progress"),
        completed=count(status="completed"),
        high=count(priority="high"),
        medium=count(priority="medium"),
        low=count(priority="low"),
    )
    return Ok(stats.dump())
