"""Schema para el endpoint de health."""
from pydantic import BaseModel


class HealthOut(BaseModel):
    success: bool
    message: str
    timestamp: str
