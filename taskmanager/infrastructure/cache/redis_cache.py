"""Cliente Redis para la cache de respuestas (cache-aside).

- Opcional: sólo se conecta si `REDIS_ENABLED=true` (o si se inyecta un cliente).
- Cualquier fallo del backend (conexión, timeout, error de runtime) se registra
  y degrada a "sin cache"; nunca llega al cliente HTTP.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import redis

from taskmanager.core.config import Settings

_log = logging.getLogger("taskmanager.cache")

KEY_PREFIX = "cache"
GUEST = "guest"


def cache_key(method: str, path: str, query: str, principal_id: Optional[str]) -> str:
    """`cache:<METHOD>:<path>?<query>:<principal|guest>`"""
    url = f"{path}?{query}" if query else path
    return f"{KEY_PREFIX}:{method.upper()}:{url}:{principal_id or GUEST}"


class RedisCache:
    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.settings = settings
        self._client = client
        self._enabled = client is not None

    def connect(self) -> bool:
        if self._client is not None:
            self._enabled = True
            return True
        if not self.settings.redis_configured:
            _log.info("Cache Redis deshabilitada. Usa REDIS_ENABLED=true para habilitarla.")
            return False
        try:
            client = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password or None,
                socket_timeout=self.settings.redis_socket_timeout,
                socket_connect_timeout=self.settings.redis_socket_timeout,
                decode_responses=True,
            )
            client.ping()
        except redis.RedisError as e:
            _log.warning("Conexión a Redis falló: %s. Continuando sin cache.", e)
            return False
        self._client = client
        self._enabled = True
        _log.info("Redis conectado host=%s port=%s", self.settings.redis_host, self.settings.redis_port)
        return True

    @property
    def enabled(self) -> bool:
        return self._enabled and self._client is not None

    def get(self, key: str) -> Optional[str]:
        if not self.enabled:
            return None
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            _log.warning("Cache get falló key=%s: %s", key, e)
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if not self.enabled:
            return
        try:
            self._client.setex(key, ttl_seconds, value)
            _log.debug("Cache set: %s (ttl=%ss)", key, ttl_seconds)
        except redis.RedisError as e:
            _log.warning("Cache set falló key=%s: %s", key, e)

    def delete_pattern(self, pattern: str) -> int:
        """Borra todas las claves que calzan con `pattern` (SCAN, no KEYS)."""
        if not self.enabled:
            return 0
        try:
            keys = list(self._client.scan_iter(match=pattern, count=500))
            if not keys:
                return 0
            removed = int(self._client.delete(*keys) or 0)
            _log.debug("Cache cleared: %s (%s claves)", pattern, removed)
            return removed
        except redis.RedisError as e:
            _log.warning("Cache clear falló pattern=%s: %s", pattern, e)
            return 0

    def invalidate_principal(self, *principal_ids: Optional[str]) -> int:
        """Invalida toda vista cacheada de los principals indicados."""
        removed = 0
        for pid in {p for p in principal_ids if p}:
            removed += self.delete_pattern(f"{KEY_PREFIX}:*:{pid}")
        return removed

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except redis.RedisError as e:
                _log.warning("Cierre de Redis falló: %s", e)
        self._client = None
        self._enabled = False
