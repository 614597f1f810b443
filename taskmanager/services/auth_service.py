"""
Lógica de autenticación: registro, login, refresh (rotación), logout y perfil.

Todas las funciones devuelven `Ok(...)` o `Fail(AppError)`; ninguna lanza por
credenciales inválidas.
"""
import hmac
import logging
from typing import Any, Dict

from bson import ObjectId

from taskmanager.api.schemas.auth import (
    ChangePasswordPayload,
    LoginPayload,
    ProfileUpdatePayload,
    RegisterPayload,
)
from taskmanager.api.schemas.user import user_out, user_summary
from taskmanager.core.result import Fail, Ok, Result, conflict, unauthenticated
from taskmanager.repositories import user_repo as repo
from taskmanager.services.container import Services
from taskmanager.services.task_service import invalidate_views
from taskmanager.services.token_service import TokenKind, TokenPair, hash_token

_log = logging.getLogger("taskmanager.auth")

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DEACTIVATED = "Account is deactivated. Please contact support."
INVALID_REFRESH = "Invalid or expired refresh token"


def _token_body(doc: Dict[str, Any], pair: TokenPair) -> Dict[str, Any]:
    return {
        "user": user_summary(doc),
        "accessToken": pair.access_token,
        "refreshToken": pair.refresh_token,
    }


def register(svc: Services, payload: RegisterPayload) -> Result[Dict[str, Any]]:
    """Registra un usuario local y emite su primer par de tokens."""
    db = svc.db
    if repo.find_user_by_email(db, payload.email):
        return conflict("User already exists with this email")

    doc = repo.insert_user(db, {
        "name": payload.name,
        "email": payload.email,
        "password_hash": svc.passwords.hash_password(payload.password),
        "role": payload.role or "user",
    })
    user_id = str(doc["_id"])
    pair = svc.tokens.issue_token_pair(user_id)
    repo.set_refresh_token_hash(db, user_id, hash_token(pair.refresh_token))

    _log.info("New user registered: %s", doc["email"])
    return Ok(_token_body(doc, pair))


def login(svc: Services, payload: LoginPayload) -> Result[Dict[str, Any]]:
    db = svc.db
    u = repo.find_user_by_email(db, payload.email)
    if not u:
        # Mismo costo que un password incorrecto: no revela si el email existe
        svc.passwords.verify_dummy(payload.password)
        return unauthenticated(INVALID_CREDENTIALS)
    if not svc.passwords.verify_password(payload.password, u.get("password_hash")):
        return unauthenticated(INVALID_CREDENTIALS)
    if not u.get("is_active", True):
        return unauthenticated(ACCOUNT_DEACTIVATED)

    user_id = str(u["_id"])
    pair = svc.tokens.issue_token_pair(user_id)
    repo.record_login(db, user_id, hash_token(pair.refresh_token))

    _log.info("User logged in: %s", u["email"])
    return Ok(_token_body(u, pair))


def refresh(svc: Services, refresh_token: str) -> Result[Dict[str, Any]]:
    """Rota el refresh token: sólo el último emitido para el usuario es válido.

    Cualquier fallo (firma, expiración, token ya rotado, usuario inexistente o
    inactivo) responde igual al cliente.
    """
    rejected = unauthenticated(INVALID_REFRESH)
    verified = svc.tokens.verify_token(refresh_token, TokenKind.REFRESH)
    if isinstance(verified, Fail):
        _log.info("Refresh rechazado: %s", verified.error.code)
        return rejected

    user_id = verified.value
    if not ObjectId.is_valid(user_id):
        return rejected
    db = svc.db
    u = repo.get_user_by_id(db, user_id)
    if not u or not u.get("is_active", True):
        return rejected

    presented = hash_token(refresh_token)
    stored = u.get("refresh_token_hash") or ""
    if not hmac.compare_digest(stored, presented):
        _log.warning("Refresh token no vigente presentado user_id=%s", user_id)
        return rejected

    pair = svc.tokens.issue_token_pair(user_id)
    if not repo.swap_refresh_token_hash(db, user_id, presented, hash_token(pair.refresh_token)):
        # Otro refresh concurrente ya rotó este token
        _log.warning("Rotación concurrente detectada user_id=%s", user_id)
        return rejected

    return Ok({"accessToken": pair.access_token, "refreshToken": pair.refresh_token})


def logout(svc: Services, principal: Dict[str, Any]) -> Result[None]:
    repo.set_refresh_token_hash(svc.db, principal["id"], None)
    _log.info("User logged out: %s", principal.get("email"))
    return Ok(None)


def me(principal: Dict[str, Any]) -> Result[Dict[str, Any]]:
    return Ok({"user": user_out(principal)})


def update_profile(svc: Services, principal: Dict[str, Any], payload: ProfileUpdatePayload) -> Result[Dict[str, Any]]:
    db = svc.db
    updates: Dict[str, Any] = {}
    if payload.name:
        updates["name"] = payload.name
    if payload.email and payload.email != principal.get("email"):
        if repo.email_taken(db, payload.email, exclude_id=principal["id"]):
            return conflict("Email already in use")
        updates["email"] = payload.email

    doc = repo.update_user(db, principal["id"], updates) if updates else repo.get_user_by_id(db, principal["id"])
    if updates:
        # Nombre/email aparecen como dueño en las tareas cacheadas
        invalidate_views(svc, principal["id"])
    _log.info("User profile updated: %s", doc["email"])
    return Ok({"user": user_out(doc)})


def change_password(svc: Services, principal: Dict[str, Any], payload: ChangePasswordPayload) -> Result[None]:
    db = svc.db
    u = repo.get_user_by_id(db, principal["id"])
    if not u or not svc.passwords.verify_password(payload.current_password, u.get("password_hash")):
        return unauthenticated("Current password is incorrect")

    repo.update_user(db, principal["id"], {"password_hash": svc.passwords.hash_password(payload.new_password)})
    _log.info("Password changed: %s", u["email"])
    return Ok(None)
