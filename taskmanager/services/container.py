"""
Contenedor de dependencias de la aplicación.

Agrupa los clientes con ciclo de vida explícito (Mongo, Redis) y los servicios
sin estado compartido global (tokens, passwords, rate limit). Se construye una
vez en el lifespan y se guarda en `app.state.services`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from pymongo.database import Database

from taskmanager.core.config import Settings
from taskmanager.core.rate_limit import RateLimiter
from taskmanager.infrastructure.cache.redis_cache import RedisCache
from taskmanager.infrastructure.db.mongo import MongoConnection
from taskmanager.services.password_service import PasswordService
from taskmanager.services.token_service import TokenService

if TYPE_CHECKING:
    from taskmanager.api.guards import Pipelines


class Services:
    def __init__(
        self,
        settings: Settings,
        mongo: MongoConnection,
        cache: RedisCache,
        *,
        tokens: TokenService | None = None,
        passwords: PasswordService | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        self.settings = settings
        self.mongo = mongo
        self.cache = cache
        self.tokens = tokens or TokenService(settings)
        self.passwords = passwords or PasswordService(settings)
        self.limiter = limiter or RateLimiter()
        self.pipelines: "Pipelines | None" = None

    @property
    def db(self) -> Database:
        return self.mongo.db

    def close(self) -> None:
        self.cache.close()
        self.mongo.close()
