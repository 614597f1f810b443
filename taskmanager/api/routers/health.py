"""Health (sin auth ni prefijo), salida tipada y estable."""
from fastapi import APIRouter, status

from taskmanager.api.schemas.health import HealthOut
from taskmanager.repositories.user_repo import now_iso

router = APIRouter(tags=["Health"])  # se monta sin prefijo para mantener la ruta estable


@router.get("/health", status_code=status.HTTP_200_OK, response_model=HealthOut, summary="Salud básica")
def health() -> HealthOut:
    return HealthOut(success=True, message="Server is running", timestamp=now_iso())
