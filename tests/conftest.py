"""Shared test fixtures."""

from __future__ import annotations

import os

# Settings are read when the app module is imported; configure them first.
os.environ["BOREVIEW_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BOREVIEW_JWT_SECRET"] = "test-secret-key-for-the-suite"
os.environ["BOREVIEW_LOG_FORMAT"] = "console"
os.environ["BOREVIEW_EMAIL_PROVIDER"] = ""
os.environ["BOREVIEW_RECAPTCHA_SECRET_KEY"] = ""
os.environ["BOREVIEW_ADMIN_EMAIL"] = ""
os.environ["BOREVIEW_ADMIN_PASSWORD"] = ""

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from boreview.auth.jwt import create_admin_token  # noqa: E402
from boreview.auth.service import create_admin_user  # noqa: E402
from boreview.config import get_settings  # noqa: E402
from boreview.database import close_db, create_tables, get_session, init_db  # noqa: E402
from boreview.db.base import utcnow  # noqa: E402
from boreview.db.models import Category, Post, User  # noqa: E402
from boreview.email.service import reset_email_service  # noqa: E402
from boreview.gamification.seed import seed_badges, seed_categories, seed_daily_tasks  # noqa: E402
from boreview.main import create_app  # noqa: E402

get_settings.cache_clear()

ADMIN_EMAIL = "admin@boreview.vn"
ADMIN_PASSWORD = "AdminPass123"

LONG_CONTENT = "<p>" + " ".join(["Bộ phim này có nhịp kể chậm rãi nhưng cuốn hút"] * 40) + "</p>"


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory database with reference data seeded."""
    await init_db(get_settings().database_url)
    await create_tables()
    async for session in get_session():
        await seed_badges(session)
        await seed_daily_tasks(session)
        await seed_categories(session)
        break
    reset_email_service()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app (no lifespan; the database fixture stands in)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    user = await create_admin_user(db_session, ADMIN_EMAIL, ADMIN_PASSWORD, name="Bơ Admin")
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    token = create_admin_token(admin_user.id, admin_user.email, admin_user.role)
    return {"Authorization": f"Bearer {token}"}


async def make_post(
    db: AsyncSession,
    title: str = "Review Mắt Biếc: thanh xuân và nỗi buồn",
    published: bool = True,
    category_slug: str | None = "phim-drama",
    content: str = LONG_CONTENT,
    views: int = 0,
) -> Post:
    """Insert a post directly, bypassing the admin API."""
    categories = []
    if category_slug:
        categories = list((await db.execute(select(Category).where(Category.slug == category_slug))).scalars())
    post = Post(
        title=title,
        slug=f"post-{utcnow().timestamp()}-{title[:8]}".replace(" ", "-").lower(),
        content=content,
        excerpt="Một bài review về bộ phim thanh xuân đình đám với nhiều cảm xúc lẫn lộn.",
        published=published,
        published_at=utcnow() if published else None,
        views=views,
        categories=categories,
    )
    db.add(post)
    await db.commit()
    return post


@pytest_asyncio.fixture
async def published_post(db_session: AsyncSession) -> Post:
    return await make_post(db_session)


@pytest_asyncio.fixture
async def draft_post(db_session: AsyncSession) -> Post:
    return await make_post(db_session, title="Bản nháp chưa đăng về Đắc Nhân Tâm", published=False)


async def register_visitor(
    client: AsyncClient,
    username: str = "bofan",
    display_name: str = "Bơ Fan",
    password: str | None = "secret1",
    ip: str = "10.0.0.1",
) -> dict:
    body = {"action": "register", "username": username, "displayName": display_name}
    if password:
        body["password"] = password
    response = await client.post("/api/visitor/auth", json=body, headers={"X-Forwarded-For": ip})
    assert response.status_code == 200, response.text
    return response.json()


@pytest_asyncio.fixture
async def visitor(client: AsyncClient) -> dict:
    """A registered visitor: the auth response body (visitor + token)."""
    return await register_visitor(client)


@pytest_asyncio.fixture
async def visitor_headers(visitor: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {visitor['token']}"}


@pytest.fixture
def post_factory(db_session: AsyncSession):
    async def _make(**kwargs: object) -> Post:
        return await make_post(db_session, **kwargs)

    return _make


@pytest.fixture
def visitor_factory(client: AsyncClient):
    async def _make(**kwargs: object) -> dict:
        return await register_visitor(client, **kwargs)

    return _make
