"""Agregador de routers de la API (montados bajo el prefijo configurado)."""
from fastapi import APIRouter

from taskmanager.api.routers import admin, auth, tasks

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(tasks.router)
api_router.include_router(admin.router)
