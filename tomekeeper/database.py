"""Async engine and the session factory the repositories open per call."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tomekeeper.config import get_settings

settings = get_settings()


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Records are returned to callers after commit, so they must stay loaded
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = create_async_engine(settings.database_url, echo=settings.sql_echo, pool_pre_ping=True)
AsyncSessionLocal = make_session_factory(engine)
