"""Rutas de administración (sólo rol admin)."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from taskmanager.api.deps import get_services, request_context
from taskmanager.api.responses import respond
from taskmanager.api.schemas.user import AdminUserUpdate, Role
from taskmanager.core.pipeline import RequestContext
from taskmanager.services import admin_service as service
from taskmanager.services.container import Services

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", summary="Listar usuarios")
def list_users(
    search: Optional[str] = Query(default=None, max_length=100),
    role: Optional[Role] = Query(default=None),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    def handler(c: RequestContext):
        result = service.list_users(svc, search=search, role=role, is_active=is_active, page=page, limit=limit)
        return respond(result, "Users retrieved successfully")

    return svc.pipelines.admin.run(ctx, handler).render()


@router.get("/stats", summary="Estadísticas del sistema")
def system_stats(svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.admin.run(
        ctx, lambda c: respond(service.system_stats(svc), "System statistics retrieved")
    ).render()


@router.get("/users/{user_id}", summary="Obtener usuario")
def get_user(user_id: str, svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.admin.run(
        ctx, lambda c: respond(service.get_user(svc, user_id), "User retrieved successfully")
    ).render()


@router.put("/users/{user_id}", summary="Actualizar usuario")
def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.admin.run(
        ctx, lambda c: respond(service.update_user(svc, c.principal, user_id, payload), "User updated successfully")
    ).render()


@router.delete("/users/{user_id}", summary="Eliminar usuario y sus tareas")
def delete_user(user_id: str, svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.admin.run(
        ctx,
        lambda c: respond(service.delete_user(svc, c.principal, user_id), "User and associated tasks deleted successfully"),
    ).render()
