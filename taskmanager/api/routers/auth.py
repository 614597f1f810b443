"""Rutas de autenticación: registro, login, refresh, logout y perfil."""
from fastapi import APIRouter, Depends, status

from taskmanager.api.deps import get_services, request_context
from taskmanager.api.responses import respond
from taskmanager.api.schemas.auth import (
    ChangePasswordPayload,
    LoginPayload,
    ProfileUpdatePayload,
    RefreshPayload,
    RegisterPayload,
)
from taskmanager.core.pipeline import RequestContext
from taskmanager.services import auth_service as service
from taskmanager.services.container import Services

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Registrar usuario",
    description="Crea la cuenta y devuelve el par de tokens. Limitado por IP.",
)
def register(
    payload: RegisterPayload,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.auth_attempt.run(
        ctx,
        lambda c: respond(service.register(svc, payload), "User registered successfully", status.HTTP_201_CREATED),
    ).render()


@router.post("/login", summary="Login con email y password")
def login(
    payload: LoginPayload,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.auth_attempt.run(
        ctx, lambda c: respond(service.login(svc, payload), "Login successful")
    ).render()


@router.post("/refresh", summary="Rotar refresh token")
def refresh(
    payload: RefreshPayload,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.public.run(
        ctx, lambda c: respond(service.refresh(svc, payload.refresh_token), "Token refreshed successfully")
    ).render()


@router.post("/logout", summary="Cerrar sesión (invalida el refresh token)")
def logout(svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.protected.run(
        ctx, lambda c: respond(service.logout(svc, c.principal), "Logout successful")
    ).render()


@router.get("/me", summary="Usuario actual")
def me(svc: Services = Depends(get_services), ctx: RequestContext = Depends(request_context)):
    return svc.pipelines.protected.run(
        ctx, lambda c: respond(service.me(c.principal), "User profile retrieved")
    ).render()


@router.put("/profile", summary="Actualizar nombre/email")
def update_profile(
    payload: ProfileUpdatePayload,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.protected.run(
        ctx, lambda c: respond(service.update_profile(svc, c.principal, payload), "Profile updated successfully")
    ).render()


@router.put("/change-password", summary="Cambiar password")
def change_password(
    payload: ChangePasswordPayload,
    svc: Services = Depends(get_services),
    ctx: RequestContext = Depends(request_context),
):
    return svc.pipelines.protected.run(
        ctx, lambda c: respond(service.change_password(svc, c.principal, payload), "Password changed successfully")
    ).render()
