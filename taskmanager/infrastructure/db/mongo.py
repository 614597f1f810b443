"""Conexión MongoDB (PyMongo) con ciclo de vida explícito.

Se construye en el lifespan de la app, se expone vía `Services` y se cierra al
apagar. No hay cliente global: los repositorios reciben la `Database`.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import certifi
from pymongo import MongoClient
from pymongo.database import Database

from taskmanager.core.config import Settings

_log = logging.getLogger("taskmanager.mongo")


class MongoConnection:
    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.settings = settings
        self._client = client
        self._db: Optional[Database] = None

    def _build_client(self) -> MongoClient:
        uri = self.settings.mongo_uri
        kwargs: dict[str, Any] = dict(serverSelectionTimeoutMS=self.settings.mongo_timeout_ms)
        if uri.startswith("mongodb+srv://"):
            # SRV ya implica TLS; proveemos CA bundle para robustez
            kwargs["tlsCAFile"] = certifi.where()
        elif self.settings.mongo_tls:
            kwargs["tls"] = True
            kwargs["tlsCAFile"] = certifi.where()
            kwargs["tlsAllowInvalidCertificates"] = self.settings.mongo_tls_insecure
            kwargs["tlsAllowInvalidHostnames"] = self.settings.mongo_tls_allow_invalid_hostnames
        return MongoClient(uri, **kwargs)

    def connect(self) -> Database:
        """Inicializa el cliente y valida conexión (ping) si lo construimos nosotros."""
        if self._client is None:
            self._client = self._build_client()
            self._client.admin.command("ping")
            _log.info("Mongo conectado db=%s", self.settings.mongo_db)
        self._db = self._client[self.settings.mongo_db]
        return self._db

    @property
    def db(self) -> Database:
        if self._db is None:
            raise RuntimeError("Mongo no inicializado. Llama a connect() en el arranque.")
        return self._db

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            _log.info("Mongo desconectado")
        self._client = None
        self._db = None
