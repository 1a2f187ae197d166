from collections.abc import AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.context import AppContext
from todo_api.errors import Unauthorized
from todo_api.models.user import User as UserModel
from todo_api.services.auth import get_user_by_id
from todo_api.services.tokens import TokenService

bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_db(context: AppContext = Depends(get_context)) -> AsyncIterator[AsyncSession]:
    async with context.session_factory() as db:
        try:
            yield db
        finally:
            await db.close()


def get_tokens(context: AppContext = Depends(get_context)) -> TokenService:
    return context.tokens


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UserModel:
    if credentials is None:
        raise Unauthorized("Access token required")

    user_id = tokens.verify_access(credentials.credentials)
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user
