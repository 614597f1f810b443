"""
Esquemas Pydantic para operaciones de autenticación.

- Mantiene las validaciones y normalizaciones (p. ej. email en minúsculas).
- Los mensajes de error son los que ve el cliente en `errors[].message`.
"""

from typing import Literal, Optional
from pydantic import EmailStr, field_validator

from taskmanager.api.schemas.common import CamelModel


def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    if len(v) > 50:
        raise ValueError("Name cannot exceed 50 characters")
    return v


def _clean_password(v: str, label: str = "Password") -> str:
    if not v or not v.strip():
        raise ValueError(f"{label} is required")
    if len(v.strip()) < 6:
        raise ValueError(f"{label} must be at least 6 characters long")
    return v


class RegisterPayload(CamelModel):
    name: str
    email: EmailStr
    password: str
    role: Optional[Literal["user", "admin"]] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return str(v).strip().lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _clean_password(v)


class LoginPayload(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: EmailStr) -> str:
        return str(v).strip().lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Password is required")
        return v


class RefreshPayload(CamelModel):
    refresh_token: str

    @field_validator("refresh_token")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Refresh token is required")
        return v


class ProfileUpdatePayload(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: Optional[EmailStr]) -> Optional[str]:
        return str(v).strip().lower() if v is not None else None


class ChangePasswordPayload(CamelModel):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def _current(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def _new(cls, v: str) -> str:
        return _clean_password(v, "New password")
