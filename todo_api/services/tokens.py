import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from todo_api.config import Settings
from todo_api.errors import ExpiredToken, InvalidToken

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """
    Issues and verifies signed access/refresh tokens.

    Access and refresh tokens are signed with separate secrets, so a leaked
    access secret cannot mint refresh tokens and vice versa. Nothing is
    stored server-side: a token is valid until it expires.
    """

    def __init__(self, settings: Settings):
        self.algorithm = settings.ALGORITHM
        self._secrets = {
            ACCESS: settings.JWT_SECRET,
            REFRESH: settings.REFRESH_TOKEN_SECRET,
        }
        self._lifetimes = {
            ACCESS: timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            REFRESH: timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        }

    @property
    def refresh_lifetime(self) -> timedelta:
        return self._lifetimes[REFRESH]

    def issue(self, user_id: uuid.UUID) -> TokenPair:
        return TokenPair(
            access_token=self._encode(user_id, ACCESS),
            refresh_token=self._encode(user_id, REFRESH),
        )

    def verify_access(self, token: str) -> uuid.UUID:
        return self._decode(token, ACCESS)

    def verify_refresh(self, token: str) -> uuid.UUID:
        return self._decode(token, REFRESH)

    def _encode(self, user_id: uuid.UUID, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + self._lifetimes[token_type],
            # unique per token so two pairs issued in the same second differ
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._secrets[token_type], algorithm=self.algorithm)

    def _decode(self, token: str, token_type: str) -> uuid.UUID:
        label = "Access" if token_type == ACCESS else "Refresh"
        try:
            payload = jwt.decode(token, self._secrets[token_type], algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ExpiredToken(f"{label} token expired")
        except JWTError:
            raise InvalidToken(f"Invalid {label.lower()} token")

        if payload.get("type") != token_type:
            raise InvalidToken(f"Invalid {label.lower()} token")
        try:
            return uuid.UUID(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise InvalidToken(f"Invalid {label.lower()} token")
