"""Repo de la colección `user`.

- `email` siempre en minúsculas (lo normalizan los schemas).
- Timestamps en ISO-8601 UTC (Z).
- Guarda sólo el hash SHA-256 del refresh token vigente (una sesión por cuenta).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

COLLECTION = "user"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def insert_user(db: Database, doc: Dict[str, Any]) -> Dict[str, Any]:
    """Inserta usuario con defaults y devuelve el documento guardado."""
    data = dict(doc)
    now = now_iso()
    data.setdefault("role", "user")
    data.setdefault("is_active", True)
    data.setdefault("last_login", None)
    data.setdefault("refresh_token_hash", None)
    data.setdefault("created_at", now)
    data["updated_at"] = now
    res = db[COLLECTION].insert_one(data)
    data["_id"] = res.inserted_id
    return data


def find_user_by_email(db: Database, email: str) -> Optional[Dict[str, Any]]:
    return db[COLLECTION].find_one({"email": email})


def get_user_by_id(db: Database, user_id: str) -> Optional[Dict[str, Any]]:
    """Obtiene usuario por id (str). Un id mal formado lanza `InvalidId`."""
    return db[COLLECTION].find_one({"_id": ObjectId(user_id)})


def email_taken(db: Database, email: str, exclude_id: Optional[str] = None) -> bool:
    filtro: Dict[str, Any] = {"email": email}
    if exclude_id:
        filtro["_id"] = {"$ne": ObjectId(exclude_id)}
    return db[COLLECTION].count_documents(filtro) > 0


def update_user(db: Database, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Actualiza campos y devuelve el documento resultante (o None si no existe)."""
    set_ops = dict(updates)
    set_ops["updated_at"] = now_iso()
    return db[COLLECTION].find_one_and_update(
        {"_id": ObjectId(user_id)},
        {"$set": set_ops},
        return_document=ReturnDocument.AFTER,
    )


def record_login(db: Database, user_id: str, refresh_token_hash: str) -> None:
    """Sella `last_login` y reemplaza el refresh token vigente."""
    now = now_iso()
    db[COLLECTION].update_one(
        {"_id": ObjectId(user_id)},
        {"$set": {"last_login": now, "refresh_token_hash": refresh_token_hash, "updated_at": now}},
    )


def set_refresh_token_hash(db: Database, user_id: str, refresh_token_hash: Optional[str]) -> None:
    db[COLLECTION].update_one(
        {"_id": ObjectId(user_id)},
        {"$set": {"refresh_token_hash": refresh_token_hash, "updated_at": now_iso()}},
    )


def swap_refresh_token_hash(db: Database, user_id: str, current_hash: str, new_hash: str) -> bool:
    """Rotación condicional: sólo reemplaza si el hash guardado sigue siendo `current_hash`.

    Devuelve False si otro refresh ganó la carrera o el token ya no es el vigente.
    """
    res = db[COLLECTION].update_one(
        {"_id": ObjectId(user_id), "refresh_token_hash": current_hash},
        {"$set": {"refresh_token_hash": new_hash, "updated_at": now_iso()}},
    )
    return res.matched_count == 1


def list_users(
    db: Database, filtro: Dict[str, Any], *, skip: int = 0, limit: int = 10
) -> Tuple[List[Dict[str, Any]], int]:
    """Lista usuarios (más recientes primero) y devuelve también el total del filtro."""
    cursor = db[COLLECTION].find(filtro).sort([("created_at", -1), ("_id", -1)]).skip(skip).limit(limit)
    return list(cursor), db[COLLECTION].count_documents(filtro)


def get_users_by_ids(db: Database, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    """Mapa id(str) -> usuario, para "popular" dueños de tareas."""
    oids = [ObjectId(u) for u in set(user_ids) if ObjectId.is_valid(u)]
    if not oids:
        return {}
    docs = db[COLLECTION].find({"_id": {"$in": oids}}, {"name": 1, "email": 1})
    return {str(d["_id"]): d for d in docs}


def count_users(db: Database, filtro: Optional[Dict[str, Any]] = None) -> int:
    return db[COLLECTION].count_documents(filtro or {})


def delete_user(db: Database, user_id: str) -> bool:
    res = db[COLLECTION].delete_one({"_id": ObjectId(user_id)})
    return res.deleted_count == 1


def admin_ids(db: Database) -> List[str]:
    """Ids (str) de todos los admins; sus vistas cacheadas abarcan tareas ajenas."""
    return [str(d["_id"]) for d in db[COLLECTION].find({"role": "admin"}, {"_id": 1})]
