import uuid

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.dependencies import get_current_user, get_db
from todo_api.models.user import User as UserModel
from todo_api.schemas.common import ERROR_RESPONSES, Envelope, MessageResponse
from todo_api.schemas.todo import (
    MAX_PAGE, PRIORITY_PATTERN, SORT_BY_PATTERN, SORT_ORDER_PATTERN, STATUS_PATTERN,
    BulkDeleteRequest, Pagination, TodoCreate, TodoData, TodoListData, TodoListQuery,
    TodoResponse, TodoStatistics, TodoUpdate,
)
from todo_api.services import todos as todo_service

router = APIRouter(prefix="/api/todos", tags=["todos"], responses=ERROR_RESPONSES)


class BulkDeleteResult(BaseModel):
    deleted: int


class BulkDeleteResponse(Envelope[BulkDeleteResult]):
    message: str


def todo_envelope(todo) -> Envelope[TodoData]:
    return Envelope[TodoData](data=TodoData(todo=TodoResponse.model_validate(todo)))


@router.get("", response_model=Envelope[TodoListData])
async def list_todos(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    status_filter: str | None = Query(None, alias="status", pattern=STATUS_PATTERN),
    priority: str | None = Query(None, pattern=PRIORITY_PATTERN),
    search: str | None = Query(None, max_length=200),
    sort_by: str = Query("createdAt", alias="sortBy", pattern=SORT_BY_PATTERN),
    sort_order: str = Query("DESC", alias="sortOrder", pattern=SORT_ORDER_PATTERN),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    query = TodoListQuery(
        page=page,
        limit=limit,
        status=status_filter,
        priority=priority,
        search=search or None,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await todo_service.list_todos(db, current_user.id, query)
    return Envelope[TodoListData](data=TodoListData(
        todos=[TodoResponse.model_validate(t) for t in result.todos],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            pages=result.pages,
        ),
    ))


@router.get("/stats", response_model=Envelope[TodoStatistics])
async def get_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    stats = await todo_service.statistics(db, current_user.id)
    return Envelope[TodoStatistics](data=TodoStatistics(**stats))


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete(
    data: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    deleted = await todo_service.bulk_delete(db, current_user.id, data.ids)
    return BulkDeleteResponse(
        message=f"{deleted} todos deleted successfully",
        data=BulkDeleteResult(deleted=deleted),
    )


@router.get("/{todo_id}", response_model=Envelope[TodoData])
async def get_todo(
    todo_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    todo = await todo_service.get_todo(db, current_user.id, todo_id)
    return todo_envelope(todo)


@router.post("", response_model=Envelope[TodoData], status_code=status.HTTP_201_CREATED)
async def create_todo(
    data: TodoCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    todo = await todo_service.create_todo(db, current_user.id, data)
    return todo_envelope(todo)


@router.put("/{todo_id}", response_model=Envelope[TodoData])
@router.patch("/{todo_id}", response_model=Envelope[TodoData])
async def update_todo(
    todo_id: uuid.UUID,
    data: TodoUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    todo = await todo_service.update_todo(db, current_user.id, todo_id, data)
    return todo_envelope(todo)


@router.delete("/{todo_id}", response_model=MessageResponse)
async def delete_todo(
    todo_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    await todo_service.delete_todo(db, current_user.id, todo_id)
    return MessageResponse(message="Todo deleted successfully")
