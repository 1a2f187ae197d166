from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from todo_api.context import AppContext
from todo_api.dependencies import get_context, get_current_user, get_db
from todo_api.models.user import User as UserModel
from todo_api.schemas.common import ERROR_RESPONSES, Envelope, MessageResponse
from todo_api.schemas.user import (
    AccessTokenData, AuthData, ProfileUpdate, UserData, UserLogin, UserRegister, UserResponse,
)
from todo_api.services import auth as auth_service
from todo_api.services.tokens import TokenPair

router = APIRouter(prefix="/api/auth", tags=["auth"], responses=ERROR_RESPONSES)


def set_refresh_cookie(response: Response, context: AppContext, tokens: TokenPair):
    settings = context.settings
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=tokens.refresh_token,
        max_age=int(context.tokens.refresh_lifetime.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def auth_envelope(result: auth_service.AuthResult) -> Envelope[AuthData]:
    return Envelope[AuthData](data=AuthData(
        user=UserResponse.model_validate(result.user),
        access_token=result.tokens.access_token,
    ))


@router.post("/register", response_model=Envelope[AuthData], status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegister,
    response: Response,
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    result = await auth_service.register(db, context.tokens, data)
    set_refresh_cookie(response, context, result.tokens)
    return auth_envelope(result)


@router.post("/login", response_model=Envelope[AuthData])
async def login(
    data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    result = await auth_service.login(db, context.tokens, data.email, data.password)
    set_refresh_cookie(response, context, result.tokens)
    return auth_envelope(result)


@router.post("/refresh", response_model=Envelope[AccessTokenData])
async def refresh_token(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    token = request.cookies.get(context.settings.REFRESH_COOKIE_NAME)
    result = await auth_service.refresh(db, context.tokens, token)
    set_refresh_cookie(response, context, result.tokens)
    return Envelope[AccessTokenData](data=AccessTokenData(access_token=result.tokens.access_token))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, context: AppContext = Depends(get_context)):
    settings = context.settings
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    return MessageResponse(message="Logged out successfully")


@router.get("/profile", response_model=Envelope[UserData])
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    user = await auth_service.get_profile(db, current_user.id)
    return Envelope[UserData](data=UserData(user=UserResponse.model_validate(user)))


@router.put("/profile", response_model=Envelope[UserData])
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    user = await auth_service.update_profile(db, current_user, data)
    return Envelope[UserData](data=UserData(user=UserResponse.model_validate(user)))
