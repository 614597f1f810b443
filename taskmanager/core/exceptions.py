"""
Traductor central de errores a respuestas `{success, message, errors?}`.

- `error_reply()` convierte un `AppError` (resultado `Fail`) en `Reply`.
- `register_exception_handlers()` cubre lo que llega como excepción: validación
  de FastAPI, rutas inexistentes y fallos de almacenamiento (clave duplicada,
  id mal formado), más el 500 genérico.
"""
import logging
import re
from typing import Any, Dict, List

from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskmanager.core.pipeline import Reply
from taskmanager.core.result import AppError, ErrorKind

_VALUE_ERROR_PREFIX = re.compile(r"^(Value error|Assertion failed), ")


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def error_body(message: str, errors: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def error_reply(error: AppError) -> Reply:
    return Reply(status_code=error.status_code, body=error_body(error.message, error.errors))


def field_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Aplana los errores de pydantic a `[{field, message}]`."""
    out: List[Dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        out.append({
            "field": ".".join(loc) or "body",
            "message": _VALUE_ERROR_PREFIX.sub("", str(err.get("msg", "Invalid value"))),
        })
    return out


def duplicate_field(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    pattern = details.get("keyPattern") or details.get("keyValue") or {}
    if pattern:
        return next(iter(pattern))
    m = re.search(r"index: (\w+?)_-?1", str(exc))
    return m.group(1) if m else "Value"


def _with_request_id(reply: Reply, request: Request) -> Reply:
    rid = _req_id(request)
    if rid and reply.body is not None:
        return Reply(reply.status_code, body={**reply.body, "request_id": rid}, headers=reply.headers)
    return reply


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("taskmanager.errors")

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail or "HTTP error")
        reply = Reply(exc.status_code, body=error_body(message), headers=getattr(exc, "headers", None) or {})
        return _with_request_id(reply, request).render()

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        error = AppError(ErrorKind.VALIDATION, "Validation failed", errors=field_errors(exc))
        return _with_request_id(error_reply(error), request).render()

    @app.exception_handler(DuplicateKeyError)
    async def _duplicate_handler(request: Request, exc: DuplicateKeyError):
        name = duplicate_field(exc)
        error = AppError(ErrorKind.CONFLICT, f"{name[:1].upper()}{name[1:]} already exists")
        return _with_request_id(error_reply(error), request).render()

    @app.exception_handler(InvalidId)
    async def _invalid_id_handler(request: Request, exc: InvalidId):
        error = AppError(ErrorKind.VALIDATION, "Invalid ID format")
        return _with_request_id(error_reply(error), request).render()

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        rid = _req_id(request)
        log.exception("Unhandled error method=%s path=%s request_id=%s", request.method, request.url.path, rid)
        error = AppError(ErrorKind.INTERNAL, "Internal Server Error")
        return _with_request_id(error_reply(error), request).render()
