# agenda/db/base.py

from __future__ import annotations

import contextlib
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    AsyncSession,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from agenda.config import settings

log = logging.getLogger(__name__)

_SUPPORTED_DRIVERS = ("postgresql+asyncpg://", "sqlite+aiosqlite://")


# --- Declarative Base ---
class Base(DeclarativeBase):
    pass


def _build_engine() -> AsyncEngine:
    if settings.ENVIRONMENT == "test":
        # Одна in-memory база на процесс: StaticPool держит единственное соединение
        log.info("Using in-memory SQLite database (aiosqlite) for tests.")
        return create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

    log.info("Using async database: %s", settings.DATABASE_URL.split("@")[-1])
    if not settings.DATABASE_URL.startswith(_SUPPORTED_DRIVERS):
        log.warning("DATABASE_URL does not use an async driver: %s", settings.DATABASE_URL[:25])
        raise ValueError("DATABASE_URL must use 'asyncpg' or 'aiosqlite' driver for async operations.")

    if settings.DATABASE_URL.startswith("sqlite"):
        return create_async_engine(settings.DATABASE_URL, echo=False)
    return create_async_engine(
        settings.DATABASE_URL, echo=(settings.ENVIRONMENT == "dev"), pool_pre_ping=True
    )


# --- Engine & Session factory ---
engine: AsyncEngine = _build_engine()
async_session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: Creates and yields an async session, handling commit/rollback.
    """
    session = async_session_factory()
    log.debug(">>> get_async_db_session: Session %s created, yielding...", id(session))
    try:
        yield session
        await session.commit()
        log.debug(">>> get_async_db_session: Session %s committed.", id(session))
    except SQLAlchemyError:
        log.exception(">>> get_async_db_session: SQLAlchemyError in session %s, rolling back...", id(session))
        await session.rollback()
        raise
    except Exception:
        log.exception(">>> get_async_db_session: Non-DB Exception in session %s scope, rolling back...", id(session))
        await session.rollback()
        raise
    finally:
        await session.close()


@contextlib.asynccontextmanager
async def async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Сессия вне FastAPI (сессии календаря, скрипты, тесты)."""
    session: AsyncSession = async_session_factory()
    log.debug("Entering async session context %s", id(session))
    try:
        yield session
        await session.commit()
    except Exception:
        log.exception("Rolling back session %s from context due to exception", id(session))
        await session.rollback()
        raise
    finally:
        log.debug("Closing session %s from context", id(session))
        await session.close()


async def create_db_and_tables() -> None:
    """Создаёт все таблицы (тесты / локальный запуск без Alembic)."""
    import agenda.core.calendar.models  # noqa: F401 (регистрация моделей в metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.debug("Database tables created.")


async def drop_db_and_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    log.debug("Database tables dropped.")


__all__ = [
    "Base", "engine", "async_session_factory", "AsyncSession",
    "get_async_db_session", "async_session_context",
    "create_db_and_tables", "drop_db_and_tables",
]
