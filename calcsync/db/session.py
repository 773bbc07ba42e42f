"""Standalone Session: one async DB session outside the FastAPI lifespan.

Invariants:
    - Same session options as DatabaseSessionManager (expire_on_commit=False)
    - The private engine is disposed on exit, even when the body raises

Design Decisions:
    - Separate from infrastructure/database.py: no pooling config, no error mapping;
      used by the admin seed command, which runs without the app
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker


@asynccontextmanager
async def standalone_session(database_url: str) -> AsyncIterator[AsyncSession]:
    """Open a session on its own engine; the engine lives only for the block."""
    engine = create_async_engine(database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            yield session
    finally:
        await engine.dispose()
