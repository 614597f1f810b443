"""
Pipeline explícito de etapas por petición.

Cada etapa recibe un `RequestContext` inmutable y devuelve `Continue(ctx)` (con
el contexto aumentado) o `Halt(reply)` (corta la cadena con una respuesta).
Las etapas que entraron reciben además la respuesta final en `leave()`, en orden
inverso; así la cache puede poblarse y el rate limit de auth puede olvidar
intentos exitosos sin tocar el objeto `Request` de Starlette.

Los pipelines se componen una sola vez en el arranque (ver `api/guards.py`).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from starlette.responses import Response


@dataclass(frozen=True)
class Reply:
    """Respuesta HTTP aún no renderizada.

    `raw` contiene un cuerpo ya serializado (p. ej. leído de cache) y tiene
    prioridad sobre `body`.
    """
    status_code: int
    body: Optional[Dict[str, Any]] = None
    raw: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        if not 200 <= self.status_code < 300:
            return False
        if self.body is not None:
            return bool(self.body.get("success"))
        return self.raw is not None

    def payload(self) -> str:
        if self.raw is not None:
            return self.raw
        return json.dumps(jsonable_encoder(self.body), ensure_ascii=False, separators=(",", ":"))

    def render(self) -> Response:
        return Response(
            content=self.payload(),
            status_code=self.status_code,
            media_type="application/json",
            headers=dict(self.headers),
        )


@dataclass(frozen=True)
class RequestContext:
    method: str
    path: str
    query: str = ""
    client_ip: str = ""
    authorization: Optional[str] = None
    params: Mapping[str, str] = field(default_factory=dict)
    principal: Optional[Dict[str, Any]] = None
    resource: Optional[Dict[str, Any]] = None
    cache_key: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        return cls(
            method=request.method,
            path=request.url.path,
            query=request.url.query or "",
            client_ip=request.client.host if request.client else "",
            authorization=request.headers.get("authorization"),
            params=dict(request.path_params),
        )

    def evolve(self, **changes: Any) -> "RequestContext":
        return replace(self, **changes)

    @property
    def principal_id(self) -> Optional[str]:
        if not self.principal:
            return None
        return str(self.principal.get("id") or self.principal.get("_id"))

    @property
    def is_admin(self) -> bool:
        return bool(self.principal) and self.principal.get("role") == "admin"


@dataclass(frozen=True)
class Continue:
    context: RequestContext


@dataclass(frozen=True)
class Halt:
    reply: Reply


Outcome = Union[Continue, Halt]
Handler = Callable[[RequestContext], Reply]


class Stage:
    """Etapa base: deja pasar el contexto sin cambios."""

    name = "stage"

    def enter(self, ctx: RequestContext) -> Outcome:
        return Continue(ctx)

    def leave(self, ctx: RequestContext, reply: Reply) -> None:
        return None


class Pipeline:
    def __init__(self, *stages: Stage) -> None:
        self.stages: Tuple[Stage, ...] = tuple(stages)

    def then(self, *stages: Stage) -> "Pipeline":
        """Nuevo pipeline con etapas adicionales al final."""
        return Pipeline(*self.stages, *stages)

    def run(self, ctx: RequestContext, handler: Handler) -> Reply:
        entered: list[Stage] = []
        reply: Optional[Reply] = None
        for stage in self.stages:
            outcome = stage.enter(ctx)
            if isinstance(outcome, Halt):
                reply = outcome.reply
                break
            ctx = outcome.context
            entered.append(stage)
        if reply is None:
            reply = handler(ctx)
        for stage in reversed(entered):
            stage.leave(ctx, reply)
        return reply

    def __repr__(self) -> str:
        return "Pipeline(%s)" % " -> ".join(s.name for s in self.stages)
