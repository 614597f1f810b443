"""
Resultado explícito de los servicios: `Ok(valor)` o `Fail(AppError)`.

Los servicios no lanzan excepciones para fallos esperados (auth, validación,
permisos, inexistencia); devuelven un `Fail` que el traductor central
(`core/exceptions.py`) convierte en status + envelope.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class AppError:
    """Fallo tipado.

    - `message`: texto para el cliente.
    - `code`: motivo interno opcional (p. ej. `token_expired`); no se expone.
    - `errors`: detalle por campo para errores de validación.
    """
    kind: ErrorKind
    message: str
    code: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = None

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None  # type: ignore[assignment]

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Fail:
    error: AppError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Fail]


# Atajos de construcción usados por los servicios

def validation(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Fail:
    return Fail(AppError(ErrorKind.VALIDATION, message, errors=errors))


def unauthenticated(message: str, code: Optional[str] = None) -> Fail:
    return Fail(AppError(ErrorKind.UNAUTHENTICATED, message, code=code))


def not_found(message: str) -> Fail:
    return Fail(AppError(ErrorKind.NOT_FOUND, message))


def conflict(message: str) -> Fail:
    return Fail(AppError(ErrorKind.CONFLICT, message))

