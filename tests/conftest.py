import os

# Keep module-level app creation away from a real Postgres
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from httpx import ASGITransport, AsyncClient

from todo_api.config import Settings
from todo_api.context import AppContext
from todo_api.main import create_app


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite://",
        ENVIRONMENT="test",
        JWT_SECRET="test-access-secret",
        REFRESH_TOKEN_SECRET="test-refresh-secret",
    )


@pytest.fixture
async def context(settings):
    ctx = AppContext.from_settings(settings)
    await ctx.startup()
    yield ctx
    await ctx.shutdown()


@pytest.fixture
async def db(context):
    async with context.session_factory() as session:
        yield session


@pytest.fixture
async def client(settings, context):
    app = create_app(settings, context)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def register(client):
    """Register a user and return (auth headers, response body)."""

    async def _register(username="alice", email="alice@example.com", password="secret123"):
        response = await client.post("/api/auth/register", json={
            "username": username,
            "email": email,
            "password": password,
            "confirmPassword": password,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        headers = {"Authorization": f"Bearer {body['data']['accessToken']}"}
        return headers, body

    return _register


@pytest.fixture
async def alice(register):
    headers, _ = await register()
    return headers


@pytest.fixture
async def bob(register):
    headers, _ = await register(username="bob", email="bob@example.com")
    return headers
