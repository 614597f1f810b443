"""
Dependencias reutilizables para routers (FastAPI Depends).

- `get_services`: contenedor creado en el lifespan (`app.state.services`).
- `request_context`: contexto inmutable que recorre el pipeline de guards.
Mantener esta capa delgada: sin lógica de negocio.
"""
from fastapi import Request

from taskmanager.core.pipeline import RequestContext
from taskmanager.services.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def request_context(request: Request) -> RequestContext:
    return RequestContext.from_request(request)
