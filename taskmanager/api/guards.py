"""
Etapas del pipeline de peticiones y su composición.

Cada ruta protegida declara qué pipeline usa (ver `Pipelines`); las etapas se
instancian una vez en el arranque con sus dependencias explícitas.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from bson import ObjectId

from taskmanager.api.schemas.user import strip_sensitive
from taskmanager.core.config import Settings
from taskmanager.core.exceptions import error_reply
from taskmanager.core.pipeline import Continue, Halt, Outcome, Pipeline, Reply, RequestContext, Stage
from taskmanager.core.rate_limit import RateLimiter
from taskmanager.core.result import AppError, ErrorKind
from taskmanager.infrastructure.cache.redis_cache import RedisCache, cache_key
from taskmanager.repositories import task_repo, user_repo
from taskmanager.services.container import Services
from taskmanager.services.token_service import TokenKind, TokenService

_log = logging.getLogger("taskmanager.guards")

NO_TOKEN = "Not authorized to access this route. Please login."
BAD_TOKEN = "Invalid or expired token"
DEACTIVATED = "User account is deactivated"

FORBIDDEN_BY_METHOD = {
    "GET": "Not authorized to access this task",
    "PUT": "Not authorized to update this task",
    "DELETE": "Not authorized to delete this task",
}


def _halt(kind: ErrorKind, message: str) -> Halt:
    return Halt(error_reply(AppError(kind, message)))


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


class Authenticate(Stage):
    """Bearer token -> principal (sin secretos) en `ctx.principal`."""

    name = "authenticate"

    def __init__(self, tokens: TokenService, users: Callable[[str], Optional[Dict[str, Any]]]) -> None:
        self.tokens = tokens
        self.users = users

    def enter(self, ctx: RequestContext) -> Outcome:
        token = bearer_token(ctx.authorization)
        if token is None:
            return _halt(ErrorKind.UNAUTHENTICATED, NO_TOKEN)

        verified = self.tokens.verify_token(token, TokenKind.ACCESS)
        if not verified.ok:
            _log.info("Token rechazado path=%s motivo=%s", ctx.path, verified.error.code)
            return _halt(ErrorKind.UNAUTHENTICATED, BAD_TOKEN)

        user_id = verified.value
        u = self.users(user_id) if ObjectId.is_valid(user_id) else None
        if not u:
            _log.info("Token sin usuario path=%s sub=%s", ctx.path, user_id)
            return _halt(ErrorKind.UNAUTHENTICATED, BAD_TOKEN)
        if not u.get("is_active", True):
            return _halt(ErrorKind.UNAUTHENTICATED, DEACTIVATED)

        return Continue(ctx.evolve(principal=strip_sensitive(u)))


class RequireRole(Stage):
    name = "require_role"

    def __init__(self, *roles: str) -> None:
        self.roles = frozenset(roles)

    def enter(self, ctx: RequestContext) -> Outcome:
        role = (ctx.principal or {}).get("role")
        if role not in self.roles:
            _log.warning("Rol denegado role=%s path=%s user_id=%s", role, ctx.path, ctx.principal_id)
            return _halt(ErrorKind.FORBIDDEN, f"User role '{role}' is not authorized to access this route")
        return Continue(ctx)


class CacheRead(Stage):
    """Cache-aside: un hit corta la cadena; un miss guarda la respuesta exitosa al salir."""

    name = "cache"

    def __init__(self, cache: RedisCache, ttl_seconds: int) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def enter(self, ctx: RequestContext) -> Outcome:
        if not self.cache.enabled or ctx.method != "GET":
            return Continue(ctx)
        key = cache_key(ctx.method, ctx.path, ctx.query, ctx.principal_id)
        cached = self.cache.get(key)
        if cached is not None:
            _log.debug("Cache hit: %s", key)
            return Halt(Reply(200, raw=cached))
        _log.debug("Cache miss: %s", key)
        return Continue(ctx.evolve(cache_key=key))

    def leave(self, ctx: RequestContext, reply: Reply) -> None:
        if ctx.cache_key and reply.success:
            self.cache.set(ctx.cache_key, reply.payload(), self.ttl_seconds)


class RequireOwnership(Stage):
    """Carga el recurso del path y exige que sea del principal (admins pasan)."""

    name = "require_ownership"

    def __init__(
        self,
        lookup: Callable[[str], Optional[Dict[str, Any]]],
        *,
        param: str = "task_id",
        owner_field: str = "user_id",
        not_found: str = "Task not found",
        forbidden: Optional[Dict[str, str]] = None,
    ) -> None:
        self.lookup = lookup
        self.param = param
        self.owner_field = owner_field
        self.not_found = not_found
        self.forbidden = forbidden or FORBIDDEN_BY_METHOD

    def enter(self, ctx: RequestContext) -> Outcome:
        resource_id = ctx.params.get(self.param, "")
        if not ObjectId.is_valid(resource_id):
            return _halt(ErrorKind.VALIDATION, "Invalid ID format")
        doc = self.lookup(resource_id)
        if not doc:
            return _halt(ErrorKind.NOT_FOUND, self.not_found)
        if not ctx.is_admin and str(doc.get(self.owner_field)) != ctx.principal_id:
            message = self.forbidden.get(ctx.method, self.forbidden["GET"])
            return _halt(ErrorKind.FORBIDDEN, message)
        return Continue(ctx.evolve(resource=doc))


class AuthRateLimit(Stage):
    """Límite de intentos por IP para login/registro; los exitosos no cuentan."""

    name = "auth_rate_limit"

    def __init__(self, limiter: RateLimiter, settings: Settings) -> None:
        self.limiter = limiter
        self.settings = settings

    def _key(self, ctx: RequestContext):
        return (ctx.client_ip, ctx.path)

    def enter(self, ctx: RequestContext) -> Outcome:
        allowed = self.limiter.allow(
            self._key(ctx),
            limit=self.settings.auth_rate_limit_max_attempts,
            window_seconds=self.settings.rate_limit_window_seconds,
        )
        if not allowed:
            _log.warning("Rate limit de auth ip=%s path=%s", ctx.client_ip, ctx.path)
            return _halt(ErrorKind.RATE_LIMITED, "Too many login attempts, please try again later.")
        return Continue(ctx)

    def leave(self, ctx: RequestContext, reply: Reply) -> None:
        if reply.success:
            self.limiter.forget(self._key(ctx))


@dataclass(frozen=True)
class Pipelines:
    auth_attempt: Pipeline
    public: Pipeline
    protected: Pipeline
    admin: Pipeline
    task_list: Pipeline
    task_stats: Pipeline
    task_read: Pipeline
    task_write: Pipeline


def build_pipelines(svc: Services) -> Pipelines:
    """Compone los pipelines de la aplicación a partir de los servicios."""
    settings = svc.settings

    def load_user(user_id: str) -> Optional[Dict[str, Any]]:
        return user_repo.get_user_by_id(svc.db, user_id)

    def load_task(task_id: str) -> Optional[Dict[str, Any]]:
        return task_repo.get_task(svc.db, task_id)

    public = Pipeline()
    protected = Pipeline(Authenticate(svc.tokens, load_user))
    ownership = RequireOwnership(load_task)

    return Pipelines(
        auth_attempt=public.then(AuthRateLimit(svc.limiter, settings)),
        public=public,
        protected=protected,
        admin=protected.then(RequireRole("admin")),
        task_list=protected.then(CacheRead(svc.cache, settings.cache_ttl_tasks)),
        task_stats=protected.then(CacheRead(svc.cache, settings.cache_ttl_stats)),
        task_read=protected.then(CacheRead(svc.cache, settings.cache_ttl_tasks), ownership),
        task_write=protected.then(ownership),
    )
