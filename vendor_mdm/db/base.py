"""Async SQLAlchemy engine and session factory builders, declarative Base, and FastAPI dependency.

The relational engine is built per application by ``create_app`` from its
``Settings`` and kept on ``app.state``; nothing here connects at import time.
"""


from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def create_engine_for(url: str, *, echo: bool = False) -> AsyncEngine:
    """Build an async engine; shared by the relational, document and queue stores."""
    kwargs: dict = {"echo": echo}
    if url.startswith("sqlite"):
        # SQLite (local dev / tests): one connection per session, no pool
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = NullPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)

# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )

# ---------------------------------------------------------------------------
# Declarative Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """All relational (system of record) ORM models inherit from this base."""

# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session from the app's own session factory; roll back on error."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
