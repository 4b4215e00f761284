from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    connect_args = {}
    if settings.database_url.startswith("postgresql+asyncpg"):
        connect_args["statement_cache_size"] = 0
    return create_async_engine(
        settings.database_url,
        future=True,
        echo=False,
        connect_args=connect_args,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
