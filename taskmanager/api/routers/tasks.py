"""Rutas de tareas: listado con filtros, estadísticas y CRUD con ownership."""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from taskmanager.api.deps import get_services, request_context
from taskmanager.api.responses import respond
from taskmanager.api.schemas.task import Priority, SortField, Status, TaskCreate, TaskQuery, TaskUpdate
from taskmanager.core.pipeline import RequestContext
from taskmanager.services import task_service as service
from taskmanager.services.container import Services

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def task_query(
    status: Optional[Status] = Query(default=None),
    priority: Optional[Priority] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    sort_by: Optional[SortField] = Query(default=None, alias="sortBy"),
    order: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> TaskQuery:
    return TaskQuery(
        status=status,
        priority=priority,
        search=search,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )


@router.get("", summary="Listar tareas", description="Filtros, orden y paginación. Cacheado por usuario.")
def list_tasks(
    query: TaskQuery = Depends(task_query),
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.task_list.run(
        ctx, lambda c: respond(service.list_tasks(svc, c.principal, query), "Tasks retrieved successfully")
    ).render()


@router.post("", status_code=status.HTTP_201_CREATED, summary="Crear tarea")
def create_task(
    payload: TaskCreate,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.protected.run(
        ctx,
        lambda c: respond(service.create_task(svc, c.principal, payload), "Task created successfully", status.HTTP_201_CREATED),
    ).render()


# Debe declararse antes de "/{task_id}"
@router.get("/stats", summary="Estadísticas de tareas")
def task_stats(svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.task_stats.run(
        ctx, lambda c: respond(service.task_stats(svc, c.principal), "Task statistics retrieved")
    ).render()


@router.get("/{task_id}", summary="Obtener tarea")
def get_task(task_id: str, svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.task_read.run(
        ctx, lambda c: respond(service.get_task(svc, c.resource), "Task retrieved successfully")
    ).render()


@router.put("/{task_id}", summary="Actualizar tarea (parcial)")
def update_task(
    task_id: str,
    payload: TaskUpdate,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.task_write.run(
        ctx, lambda c: respond(service.update_task(svc, c.principal, c.resource, payload), "Task updated successfully")
    ).render()


@router.delete("/{task_id}", summary="Eliminar tarea")
def delete_task(task_id: str, svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.task_write.run(
        ctx, lambda c: respond(service.delete_task(svc, c.principal, c.resource), "Task deleted successfully")
    ).render()
