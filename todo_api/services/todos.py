import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import pandas as pd
from sqlalchemy import case, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from todo_api.errors import BadRequest, NotFound
from todo_api.models.todo import PRIORITIES, STATUSES, Todo
from todo_api.schemas.todo import SORT_FIELDS, TodoCreate, TodoListQuery, TodoUpdate

logger = logging.getLogger(__name__)

COMPLETED = "completed"

# Enum columns sort in declaration order, not alphabetically
ENUM_ORDER = {
    "status": STATUSES,
    "priority": PRIORITIES,
}


@dataclass
class TodoPage:
    todos: list[Todo]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def sort_column(name: str):
    column = getattr(Todo, name)
    if name in ENUM_ORDER:
        return case({value: rank for rank, value in enumerate(ENUM_ORDER[name])}, value=column)
    return column


def apply_status_change(todo: Todo, new_status: str | None, now: datetime | None = None):
    """Keep completed_at set exactly while the todo is completed."""
    if new_status is None:
        return
    now = now or datetime.now(timezone.utc)
    if new_status == COMPLETED and todo.status != COMPLETED:
        todo.completed_at = now
    elif new_status != COMPLETED:
        todo.completed_at = None
    todo.status = new_status


async def create_todo(db: AsyncSession, user_id: uuid.UUID, data: TodoCreate) -> Todo:
    todo = Todo(
        title=data.title,
        description=data.description,
        priority=data.priority or "medium",
        due_date=data.due_date,
        tags=data.tags or [],
        user_id=user_id,
        status="pending",
    )
    apply_status_change(todo, data.status)

    db.add(todo)
    await db.commit()
    await db.refresh(todo)

    logger.info("Todo created: %s by user %s", todo.id, user_id)
    return todo


async def get_todo(db: AsyncSession, user_id: uuid.UUID, todo_id: uuid.UUID) -> Todo:
    # Absent and not-owned look the same to the caller
    result = await db.execute(
        select(Todo).filter(Todo.id == todo_id, Todo.user_id == user_id)
    )
    todo = result.scalars().first()
    if not todo:
        raise NotFound("Todo not found")
    return todo


async def list_todos(db: AsyncSession, user_id: uuid.UUID, query: TodoListQuery) -> TodoPage:
    filters = [Todo.user_id == user_id]
    if query.status:
        filters.append(Todo.status == query.status)
    if query.priority:
        filters.append(Todo.priority == query.priority)
    if query.search:
        pattern = f"%{escape_like(query.search)}%"
        filters.append(or_(
            Todo.title.ilike(pattern, escape="\\"),
            Todo.description.ilike(pattern, escape="\\"),
        ))

    total = (await db.execute(select(func.count(Todo.id)).filter(*filters))).scalar() or 0

    column = sort_column(SORT_FIELDS[query.sort_by])
    order = column.asc() if query.sort_order.upper() == "ASC" else column.desc()

    result = await db.execute(
        select(Todo)
        .filter(*filters)
        .order_by(order, Todo.id)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    return TodoPage(
        todos=list(result.scalars().all()),
        page=query.page,
        limit=query.limit,
        total=total,
    )


async def update_todo(db: AsyncSession, user_id: uuid.UUID, todo_id: uuid.UUID, data: TodoUpdate) -> Todo:
    todo = await get_todo(db, user_id, todo_id)

    update_data = data.model_dump(exclude_unset=True)
    apply_status_change(todo, update_data.pop("status", None))
    for key, value in update_data.items():
        setattr(todo, key, value)

    await db.commit()
    await db.refresh(todo)

    logger.info("Todo updated: %s by user %s", todo.id, user_id)
    return todo


async def delete_todo(db: AsyncSession, user_id: uuid.UUID, todo_id: uuid.UUID):
    todo = await get_todo(db, user_id, todo_id)
    await db.delete(todo)
    await db.commit()
    logger.info("Todo deleted: %s by user %s", todo_id, user_id)


async def bulk_delete(db: AsyncSession, user_id: uuid.UUID, ids) -> int:
    """Delete the listed todos owned by user_id; other ids are skipped."""
    if not isinstance(ids, list) or not ids:
        raise BadRequest("Array of todo IDs required")

    result = await db.execute(
        delete(Todo).where(Todo.id.in_(ids), Todo.user_id == user_id)
    )
    await db.commit()

    deleted = result.rowcount or 0
    logger.info("Bulk delete: %s todos deleted by user %s", deleted, user_id)
    return deleted


async def get_todo_dataframe(db: AsyncSession, user_id: uuid.UUID) -> pd.DataFrame:
    result = await db.execute(
        select(Todo.status, Todo.priority).filter(Todo.user_id == user_id)
    )
    rows = result.all()
    return pd.DataFrame([{"status": r.status, "priority": r.priority} for r in rows],
                        columns=["status", "priority"])


async def statistics(db: AsyncSession, user_id: uuid.UUID) -> dict:
    df = await get_todo_dataframe(db, user_id)

    total = len(df)
    by_status = {k: int(v) for k, v in df["status"].value_counts().items()}
    by_priority = {k: int(v) for k, v in df["priority"].value_counts().items()}

    completed_percentage = 0
    if total > 0:
        # round half up
        completed_percentage = math.floor(by_status.get(COMPLETED, 0) / total * 100 + 0.5)

    return {
        "total": total,
        "by_status": by_status,
        "by_priority": by_priority,
        "completed_percentage": completed_percentage,
    }
