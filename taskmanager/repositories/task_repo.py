"""Repo de la colección `task`.

- Guarda `user_id` (dueño) como string para consistencia.
- Invariante de completitud aplicado en cada inserción y actualización:
  `is_completed`/`completed_at` sólo cuando `status == "completed"`.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo.database import Database

from taskmanager.repositories.user_repo import now_iso

COLLECTION = "task"


def apply_completion(doc: Dict[str, Any], now: str) -> Dict[str, Any]:
    """Deriva `is_completed`/`completed_at` desde `status` (conserva la fecha original)."""
    if doc.get("status") == "completed":
        doc["is_completed"] = True
        doc["completed_at"] = doc.get("completed_at") or now
    else:
        doc["is_completed"] = False
        doc["completed_at"] = None
    return doc


def insert_task(db: Database, doc: Dict[str, Any]) -> Dict[str, Any]:
    """Inserta tarea con defaults y devuelve el documento guardado."""
    data = dict(doc)
    now = now_iso()
    data.setdefault("status", "pending")
    data.setdefault("priority", "medium")
    data.setdefault("due_date", None)
    data.setdefault("created_at", now)
    data["updated_at"] = now
    data.pop("completed_at", None)
    apply_completion(data, now)
    res = db[COLLECTION].insert_one(data)
    data["_id"] = res.inserted_id
    return data


def get_task(db: Database, task_id: str) -> Optional[Dict[str, Any]]:
    """Obtiene tarea por id (str). Un id mal formado lanza `InvalidId`."""
    return db[COLLECTION].find_one({"_id": ObjectId(task_id)})


def update_task(db: Database, current: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Aplica `updates` sobre `current`, re-deriva completitud y persiste."""
    now = now_iso()
    merged = {**current, **updates, "updated_at": now}
    apply_completion(merged, now)
    set_ops = {k: v for k, v in merged.items() if k != "_id"}
    db[COLLECTION].update_one({"_id": current["_id"]}, {"$set": set_ops})
    return merged


def delete_task(db: Database, task_id: Any) -> bool:
    oid = task_id if isinstance(task_id, ObjectId) else ObjectId(task_id)
    return db[COLLECTION].delete_one({"_id": oid}).deleted_count == 1


def delete_tasks_by_user(db: Database, user_id: str) -> int:
    return db[COLLECTION].delete_many({"user_id": str(user_id)}).deleted_count


def list_tasks(
    db: Database,
    filtro: Dict[str, Any],
    *,
    sort: Sequence[Tuple[str, int]],
    skip: int = 0,
    limit: int = 10,
) -> Tuple[List[Dict[str, Any]], int]:
    """Lista tareas ordenadas/paginadas y devuelve también el total del filtro."""
    order = list(sort) + [("_id", sort[0][1] if sort else -1)]
    cursor = db[COLLECTION].find(filtro).sort(order).skip(skip).limit(limit)
    return list(cursor), db[COLLECTION].count_documents(filtro)


def count_tasks(db: Database, filtro: Optional[Dict[str, Any]] = None) -> int:
    return db[COLLECTION].count_documents(filtro or {})
