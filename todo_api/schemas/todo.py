import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator
from todo_api.schemas.common import CamelModel
from todo_api.utils.sanitization import sanitize_string, sanitize_strings

STATUS_PATTERN = r"^(pending|in_progress|completed)$"
PRIORITY_PATTERN = r"^(low|medium|high)$"

# Accepted sortBy values, camelCase or snake_case, mapped to Todo columns
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "title": "title",
    "priority": "priority",
    "status": "status",
}
SORT_FIELDS.update({column: column for column in list(SORT_FIELDS.values())})
SORT_BY_PATTERN = "^(" + "|".join(sorted(SORT_FIELDS)) + ")$"
SORT_ORDER_PATTERN = r"^(ASC|DESC|asc|desc)$"
MAX_PAGE = 1_000_000


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Common base for writeable fields ──
class TodoBase(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    status: str | None = Field(None, pattern=STATUS_PATTERN)
    priority: str | None = Field(None, pattern=PRIORITY_PATTERN)
    due_date: datetime | None = None
    tags: list[str] | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("tags", mode="before")
    @classmethod
    def sanitize_tags(cls, v):
        return sanitize_strings(v)


class TodoCreate(TodoBase):
    @field_validator("due_date")
    @classmethod
    def due_in_future(cls, v):
        if v is None:
            return v
        v = as_utc(v)
        if v <= datetime.now(timezone.utc):
            raise ValueError("Due date must be in the future")
        return v


class TodoUpdate(TodoBase):
    title: str | None = Field(None, min_length=1, max_length=200)

    @field_validator("title", "status", "priority", "tags")
    @classmethod
    def not_null(cls, v):
        # Only reached when the client sent an explicit null
        if v is None:
            raise ValueError("Field may not be null")
        return v

    @field_validator("due_date")
    @classmethod
    def normalise_due(cls, v):
        return as_utc(v) if v is not None else v

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class TodoListQuery(BaseModel):
    page: int = 1
    limit: int = 10
    status: str | None = None
    priority: str | None = None
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "DESC"


class BulkDeleteRequest(BaseModel):
    ids: list[uuid.UUID]


class TodoResponse(CamelModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    status: str
    priority: str
    due_date: datetime | None = None
    completed_at: datetime | None = None
    tags: list[str] = []
    user_id: uuid.UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TodoData(CamelModel):
    todo: TodoResponse


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class TodoListData(CamelModel):
    todos: list[TodoResponse]
    pagination: Pagination


class TodoStatistics(CamelModel):
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    completed_percentage: int
