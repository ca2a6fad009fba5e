"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from boreview.admin.router import router as admin_router
from boreview.admin.router import stats_router
from boreview.auth.router import router as auth_router
from boreview.auth.service import create_admin_user, get_user_by_email
from boreview.comments.router import router as comments_router
from boreview.config import Settings, get_settings
from boreview.database import close_db, create_tables, get_session, init_db
from boreview.gamification.router import router as gamification_router
from boreview.gamification.seed import seed_badges, seed_categories, seed_daily_tasks
from boreview.health.router import router as health_router
from boreview.inbox.router import router as inbox_router
from boreview.middleware import setup_middleware
from boreview.polls.router import router as polls_router
from boreview.posts.router import router as posts_router
from boreview.reactions.router import router as reactions_router
from boreview.redis_client import close_redis, init_redis
from boreview.taxonomy.router import router as taxonomy_router
from boreview.visitors.router import router as visitors_router

logger = logging.getLogger(__name__)


async def bootstrap(settings: Settings) -> None:
    """Seed reference data and the first admin account (idempotent)."""
    async for db in get_session():
        await seed_badges(db)
        await seed_daily_tasks(db)
        await seed_categories(db)
        if settings.admin_email and settings.admin_password:
            if await get_user_by_email(db, settings.admin_email) is None:
                await create_admin_user(db, settings.admin_email, settings.admin_password, name="Admin")
                await db.commit()
        break


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.create_tables_on_startup:
        await create_tables()

    try:
        await bootstrap(settings)
    except (SQLAlchemyError, ValueError):
        logger.warning("Startup seeding failed (tables may not exist yet)", exc_info=True)

    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Bơ Review API",
        description="Backend API for Bơ Review: Vietnamese reviews blog with reader gamification",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(posts_router)
    app.include_router(taxonomy_router)
    app.include_router(comments_router)
    app.include_router(reactions_router)
    app.include_router(polls_router)
    app.include_router(visitors_router)
    app.include_router(gamification_router)
    app.include_router(inbox_router)
    app.include_router(admin_router)
    app.include_router(stats_router)

    return app


app = create_app()
