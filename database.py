from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from config import settings


def _get_engine_kwargs(url: str):
    """Return dialect-specific engine options for SQLite vs PostgreSQL."""
    kwargs = {"echo": settings.debug}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # An in-memory database only exists on its one connection
        if make_url(url).database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    return kwargs


def make_engine(url: str | None = None) -> AsyncEngine:
    url = url or settings.database_url
    return create_async_engine(url, **_get_engine_kwargs(url))


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine()

AsyncSessionLocal = make_sessionmaker(engine)


class Base(DeclarativeBase):
    pass


async def init_db(bind: AsyncEngine | None = None):
    # Register every table on the metadata before create_all
    import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
