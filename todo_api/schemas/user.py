import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator
from todo_api.schemas.common import CamelModel
from todo_api.utils.sanitization import sanitize_string

USERNAME_PATTERN = r"^[A-Za-z0-9]+$"


class UserRegister(CamelModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str

    @field_validator("username", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v, info):
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords do not match")
        return v


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    username: str | None = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr | None = None

    @field_validator("username", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class UserResponse(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserData(CamelModel):
    user: UserResponse


class AuthData(CamelModel):
    user: UserResponse
    access_token: str


class AccessTokenData(CamelModel):
    access_token: str
