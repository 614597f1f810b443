"""
Esquemas Pydantic para `task`.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import field_validator

from taskmanager.api.schemas.common import CamelModel

Status = Literal["pending", "in-progress", "completed"]
Priority = Literal["low", "medium", "high"]
SortField = Literal["createdAt", "updatedAt", "dueDate", "priority", "status", "title"]

# camelCase (query) -> campo en Mongo
SORT_FIELDS: Dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "priority": "priority",
    "status": "status",
    "title": "title",
}


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Title is required")
    if len(v) > 100:
        raise ValueError("Title cannot exceed 100 characters")
    return v


def _clean_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if len(v) > 500:
        raise ValueError("Description cannot exceed 500 characters")
    return v


def _utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def iso_z(v: Optional[datetime]) -> Optional[str]:
    if v is None:
        return None
    return _utc(v).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TaskCreate(CamelModel):
    title: str
    description: str
    status: Status = "pending"
    priority: Priority = "medium"
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str) -> str:
        v = _clean_description(v)
        if not v:
            raise ValueError("Description is required")
        return v

    @field_validator("due_date")
    @classmethod
    def _due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        v = _utc(v)
        if v is not None:
            today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
            if v < today:
                raise ValueError("Due date cannot be in the past")
        return v

    def to_doc(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "due_date": iso_z(self.due_date),
        }


class TaskUpdate(CamelModel):
    """Actualización parcial; `dueDate: null` limpia la fecha."""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    def to_updates(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        updates: Dict[str, Any] = {}
        for key in ("title", "description", "status", "priority"):
            if data.get(key):
                updates[key] = data[key]
        if "due_date" in data:
            updates["due_date"] = iso_z(data["due_date"])
        return updates


@dataclass(frozen=True)
class TaskQuery:
    """Filtros, orden y paginación de `GET /tasks` (ya validados por FastAPI)."""
    status: Optional[str] = None
    priority: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    order: Literal["asc", "desc"] = "desc"
    page: int = 1
    limit: int = 10


class TaskOwner(CamelModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class TaskOut(CamelModel):
    id: str
    title: str
    description: str
    status: Status
    priority: Priority
    due_date: Optional[str] = None
    is_completed: bool
    completed_at: Optional[str] = None
    is_overdue: bool = False
    user: TaskOwner
    created_at: str
    updated_at: str


class TaskStats(CamelModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


def _is_overdue(doc: Dict[str, Any]) -> bool:
    due = doc.get("due_date")
    if not due or doc.get("status") == "completed":
        return False
    return due < iso_z(datetime.now(timezone.utc))


def task_out(doc: Dict[str, Any], owner: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Presenta un documento `task` con su dueño "poblado" (id, name, email)."""
    owner_id = str(doc.get("user_id"))
    owner = owner or {}
    return TaskOut(
        id=str(doc["_id"]),
        title=doc["title"],
        description=doc.get("description", ""),
        status=doc["status"],
        priority=doc["priority"],
        due_date=doc.get("due_date"),
        is_completed=bool(doc.get("is_completed")),
        completed_at=doc.get("completed_at"),
        is_overdue=_is_overdue(doc),
        user=TaskOwner(id=owner_id, name=owner.get("name"), email=owner.get("email")),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    ).dump()
