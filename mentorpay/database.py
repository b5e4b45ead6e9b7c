from __future__ import annotations

from collections.abc import AsyncGenerator
import os
import sys

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool


def build_engine(database_url: str) -> AsyncEngine:
    engine_kwargs: dict = {"pool_pre_ping": True}

    # FastAPI's sync TestClient may run requests on different event loops, and
    # pooled async connections cannot be shared across loops.
    if os.getenv("PYTEST_CURRENT_TEST") or ("pytest" in sys.modules):
        engine_kwargs["poolclass"] = NullPool

    return create_async_engine(database_url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        yield session
