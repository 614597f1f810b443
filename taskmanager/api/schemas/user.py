"""
Esquemas Pydantic para la colección `user`.

Reglas clave:
- Campos en snake_case en Mongo; camelCase hacia el cliente.
- `email` se guarda siempre en minúsculas.
- Nunca se exponen `password_hash` ni `refresh_token_hash`.
- Timestamps en ISO-8601 UTC.
"""

from typing import Any, Dict, Literal, Optional
from pydantic import EmailStr, field_validator

from taskmanager.api.schemas.auth import _clean_name
from taskmanager.api.schemas.common import CamelModel

Role = Literal["user", "admin"]

SENSITIVE_FIELDS = ("password_hash", "refresh_token_hash")


class UserSummary(CamelModel):
    """Resumen que acompaña a los tokens en register/login."""
    id: str
    name: str
    email: str
    role: Role


class UserOut(CamelModel):
    """Respuesta pública de usuario (sin secretos)."""
    id: str
    name: str
    email: str
    role: Role
    is_active: bool
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AdminUserUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: Optional[EmailStr]) -> Optional[str]:
        return str(v).strip().lower() if v is not None else None


def strip_sensitive(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copia del documento sin secretos y con `id` (str)."""
    out = {k: v for k, v in doc.items() if k not in SENSITIVE_FIELDS}
    if "_id" in out:
        out["id"] = str(out.pop("_id"))
    return out


def user_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    return UserOut(**strip_sensitive(doc)).dump()


def user_summary(doc: Dict[str, Any]) -> Dict[str, Any]:
    return UserSummary(**strip_sensitive(doc)).dump()
