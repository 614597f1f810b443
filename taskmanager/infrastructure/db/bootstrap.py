"""
Bootstrap de la base Mongo: define y aplica validadores (JSON Schema) e índices.
Se ejecuta al inicio de la app para asegurar colecciones mínimas y consistencia.
No tumba la app si algo falla; deja warnings en casos no críticos.
"""
from __future__ import annotations

from typing import Any, Dict, List
import logging
from pymongo.database import Database
from pymongo.errors import PyMongoError

from taskmanager.repositories.task_repo import COLLECTION as TASK_COLL
from taskmanager.repositories.user_repo import COLLECTION as USER_COLL

_log = logging.getLogger("taskmanager.mongo.bootstrap")

USER_VALIDATOR: Dict[str, Any] = {
    "bsonType": "object",
    "required": ["name", "email", "password_hash", "role", "is_active", "created_at", "updated_at"],
    "properties": {
        "name": {"bsonType": "string", "minLength": 1, "maxLength": 50},
        "email": {"bsonType": "string", "minLength": 3, "description": "lowercase"},
        "password_hash": {"bsonType": "string"},
        "role": {"bsonType": "string", "enum": ["user", "admin"]},
        "is_active": {"bsonType": "bool"},
        "last_login": {"bsonType": ["string", "null"]},
        "refresh_token_hash": {"bsonType": ["string", "null"]},
        "created_at": {"bsonType": "string", "minLength": 10},
        "updated_at": {"bsonType": "string", "minLength": 10},
    },
    "additionalProperties": True,
}

TASK_VALIDATOR: Dict[str, Any] = {
    "bsonType": "object",
    "required": ["user_id", "title", "description", "status", "priority", "is_completed", "created_at", "updated_at"],
    "properties": {
        "user_id": {"bsonType": "string"},
        "title": {"bsonType": "string", "minLength": 1, "maxLength": 100},
        "description": {"bsonType": "string", "maxLength": 500},
        "status": {"bsonType": "string", "enum": ["pending", "in-progress", "completed"]},
        "priority": {"bsonType": "string", "enum": ["low", "medium", "high"]},
        "due_date": {"bsonType": ["string", "null"]},
        "is_completed": {"bsonType": "bool"},
        "completed_at": {"bsonType": ["string", "null"]},
        "created_at": {"bsonType": "string", "minLength": 10},
        "updated_at": {"bsonType": "string", "minLength": 10},
    },
    "additionalProperties": True,
}


def _collmod_or_create(db: Database, name: str, validator: Dict[str, Any] | None) -> None:
    try:
        if validator:
            # Intenta aplicar validator con collMod
            db.command({
                "collMod": name,
                "validator": {"$jsonSchema": validator},
                "validationLevel": "moderate",
            })
        else:
            # Asegura que exista la colección
            db.create_collection(name)
    except PyMongoError:
        # Si collMod falla (no existe), intenta crear con validator
        try:
            if name not in db.list_collection_names():
                if validator:
                    db.create_collection(name, validator={"$jsonSchema": validator})
                else:
                    db.create_collection(name)
        except PyMongoError as e:
            # No aborta el arranque; solo deja sin validator estricto.
            _log.warning("No se pudo aplicar validator en '%s': %s", name, e)


def _ensure_indexes(db: Database, name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = db[name]
    for ix in indexes:
        ix = dict(ix)
        keys = ix.pop("keys")
        try:
            coll.create_index(keys, **ix)
        except PyMongoError as e:
            # Ignora fallas de índice (e.g., ya existe o datos no únicos previos)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


def ensure_collections(db: Database, *, schema_validation: bool = True) -> None:
    """
    Garantiza colecciones, validadores e índices mínimos.
    """
    if schema_validation:
        _collmod_or_create(db, USER_COLL, USER_VALIDATOR)
        _collmod_or_create(db, TASK_COLL, TASK_VALIDATOR)

    _ensure_indexes(
        db,
        USER_COLL,
        [
            {"keys": [("email", 1)], "unique": True, "name": "uniq_email"},
            {"keys": [("created_at", -1)], "name": "ix_created_at"},
        ],
    )
    _ensure_indexes(
        db,
        TASK_COLL,
        [
            {"keys": [("user_id", 1), ("created_at", -1)], "name": "ix_user_created"},
            {"keys": [("status", 1), ("priority", 1)], "name": "ix_status_priority"},
            {"keys": [("due_date", 1)], "name": "ix_due_date"},
        ],
    )
    _log.info("Colecciones e índices verificados")
