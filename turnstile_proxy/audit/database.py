"""
Request Log Database
====================
Persists request log entries through a SQLAlchemy async engine.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, List

import structlog
from sqlalchemy import Boolean, DateTime, Integer, String, Text, select
from sqlalchemy.ext.asyncio import (
    create_async_engine as sa_create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .models import RequestLog

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


class RequestLogRecord(Base):
    __tablename__ = "request_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_ip: Mapped[str] = mapped_column(String(64))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    url: Mapped[str] = mapped_column(Text)
    had_valid_token: Mapped[bool] = mapped_column(Boolean, default=False)
    was_presented_challenge: Mapped[bool] = mapped_column(Boolean, default=False)
    challenge_succeeded: Mapped[bool] = mapped_column(Boolean, default=False)

    def to_entry(self) -> RequestLog:
        return RequestLog(
            client_ip=self.client_ip,
            timestamp=self.timestamp,
            url=self.url,
            had_valid_token=self.had_valid_token,
            was_presented_challenge=self.was_presented_challenge,
            challenge_succeeded=self.challenge_succeeded,
        )


def create_async_engine(
    database_url: str,
    pool_pre_ping: bool = True,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create the async engine for the request log.

    Args:
        database_url: Async connection string (mysql+aiomysql://...,
            postgresql+asyncpg://..., sqlite+aiosqlite://...)
        pool_pre_ping: Enable connection health checks (default: True)
        echo: Log SQL statements (default: False)
    """
    engine = sa_create_async_engine(
        database_url,
        pool_pre_ping=pool_pre_ping,
        echo=echo,
    )
    logger.info("request_log_engine_initialized", dialect=engine.dialect.name)
    return engine


class DatabaseRequestLogger:
    """RequestLogger that inserts one row per entry into ``request_logs``."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_url(cls, database_url: str) -> "DatabaseRequestLogger":
        return cls(create_async_engine(database_url))

    async def migrate(self) -> None:
        """Create the request_logs table if it does not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session that commits on success and rolls back on exception.

        Usage:
            async with store.session() as db:
                result = await db.execute(...)
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def log_request(self, entry: RequestLog) -> None:
        async with self.session() as db:
            db.add(RequestLogRecord(
                client_ip=entry.client_ip,
                timestamp=entry.timestamp,
                url=entry.url,
                had_valid_token=entry.had_valid_token,
                was_presented_challenge=entry.was_presented_challenge,
                challenge_succeeded=entry.challenge_succeeded,
            ))

    async def recent(self, limit: int = 100) -> List[RequestLog]:
        """Return the newest entries first."""
        async with self.session() as db:
            result = await db.execute(
                select(RequestLogRecord).order_by(RequestLogRecord.id.desc()).limit(limit)
            )
            return [record.to_entry() for record in result.scalars()]

    async def close(self) -> None:
        """Dispose of the engine. Call during application shutdown."""
        await self.engine.dispose()
        logger.info("request_log_engine_closed")
