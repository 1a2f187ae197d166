import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from todo_api.errors import Conflict, NotFound, Unauthorized
from todo_api.models.user import User
from todo_api.schemas.user import ProfileUpdate, UserRegister
from todo_api.services.tokens import TokenPair, TokenService
from todo_api.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class AuthResult:
    user: User
    tokens: TokenPair


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).filter(User.email == email))
    return result.scalars().first()


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(select(User).filter(User.id == user_id))
    return result.scalars().first()


async def register(db: AsyncSession, tokens: TokenService, data: UserRegister) -> AuthResult:
    if await get_user_by_email(db, data.email):
        raise Conflict("User already exists", field="email")

    user = User(
        username=data.username,
        email=data.email,
        hashed_password=get_password_hash(data.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise Conflict("User already exists", field="email")
    await db.refresh(user)

    logger.info("New user registered: %s", user.id)
    return AuthResult(user=user, tokens=tokens.issue(user.id))


async def login(db: AsyncSession, tokens: TokenService, email: str, password: str) -> AuthResult:
    user = await get_user_by_email(db, email)

    # Same error for unknown email and wrong password
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login attempt")
        raise Unauthorized(INVALID_CREDENTIALS)

    user.last_login = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)

    logger.info("User logged in: %s", user.id)
    return AuthResult(user=user, tokens=tokens.issue(user.id))


async def refresh(db: AsyncSession, tokens: TokenService, refresh_token: str | None) -> AuthResult:
    """
    Mint a new token pair from a refresh token.

    The presented refresh token is superseded, not revoked: it remains
    usable until its own expiry.
    """
    if not refresh_token:
        raise Unauthorized("Refresh token required")

    user_id = tokens.verify_refresh(refresh_token)
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise Unauthorized("User not found")

    return AuthResult(user=user, tokens=tokens.issue(user.id))


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
    if data.email and data.email != user.email:
        existing = await get_user_by_email(db, data.email)
        if existing and existing.id != user.id:
            raise Conflict("Email already in use", field="email")

    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in update_data.items():
        setattr(user, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email already in use", field="email")
    await db.refresh(user)
    return user
