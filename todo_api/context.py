import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from todo_api.config import Settings
from todo_api.database import Base, build_engine, build_session_factory
from todo_api.services.tokens import TokenService

# Register mappers on Base.metadata
from todo_api.models import user, todo  # noqa: F401

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Process-wide state: settings, DB engine and signing keys."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    tokens: TokenService

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        engine = build_engine(settings)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            tokens=TokenService(settings),
        )

    async def startup(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database ready (%s)", self.engine.url.render_as_string(hide_password=True))

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("Database connections closed")
