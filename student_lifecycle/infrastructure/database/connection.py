# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment store connection management using SQLAlchemy async.

The Database object owns the engine and the sessionmaker. It is
constructed once per process, started at startup, closed at shutdown,
and injected into every domain component.

SQLite allows a single writer per database, so for SQLite engines every
session passes through a process-wide gate. Callers must acquire class
and student locks before opening a session, never while holding one.

Example:
    database = Database(settings.database)
    await database.init()
    await database.create_schema()

    async with database.session() as session:
        result = await session.execute(select(ClassRecord))
        classes = result.scalars().all()

    await database.close()
"""

import asyncio
from contextlib import asynccontextmanager, nullcontext
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from student_lifecycle.infrastructure.database.models import Base

if TYPE_CHECKING:
    from student_lifecycle.core.config.settings import DatabaseSettings


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class Database:
    """Owner of the async engine and sessionmaker for the enrollment store.

    Attributes:
        settings: Database settings the engine is built from.
    """

    def __init__(self, settings: "DatabaseSettings") -> None:
        """Initialize without connecting.

        Args:
            settings: Database settings.
        """
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None
        self._gate: Optional[asyncio.Lock] = asyncio.Lock() if settings.is_sqlite else None

    @property
    def is_initialized(self) -> bool:
        """Check if the engine has been created."""
        return self._engine is not None

    async def init(self) -> None:
        """Create the engine and sessionmaker.

        Raises:
            DatabaseError: If engine creation fails.
        """
        if self._engine is not None:
            return

        if self.settings.is_memory:
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        elif self.settings.is_sqlite:
            engine_kwargs = {}
        else:
            engine_kwargs = {
                "pool_size": self.settings.pool_size,
                "max_overflow": self.settings.max_overflow,
                "pool_pre_ping": True,
                "pool_recycle": 1800,
            }

        try:
            self._engine = create_async_engine(
                self.settings.url,
                echo=self.settings.echo,
                **engine_kwargs,
            )
            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to initialize enrollment database", e) from e

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet.

        Raises:
            DatabaseError: If the database is not initialized or DDL fails.
        """
        engine = self.engine
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to create enrollment schema", e) from e

    async def close(self) -> None:
        """Dispose of the engine and all pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._engine is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """Get the async sessionmaker.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._sessionmaker is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._sessionmaker

    @asynccontextmanager
    async def session(self, snapshot: bool = False) -> AsyncIterator[AsyncSession]:
        """Open a session that forms one transaction.

        The session is committed on success and rolled back on any
        exception, so a multi-step command either applies fully or not
        at all.

        Args:
            snapshot: Read every statement from one consistent snapshot.
                SQLite sessions are already serialized by the gate; other
                backends run the transaction as REPEATABLE READ.

        Yields:
            AsyncSession for database operations.

        Raises:
            DatabaseError: If the database has not been initialized or
                if a database operation fails.
        """
        sessionmaker = self.sessionmaker

        async with self._gate if self._gate is not None else nullcontext():
            async with sessionmaker() as session:
                try:
                    if snapshot and self._gate is None:
                        await session.connection(
                            execution_options={"isolation_level": "REPEATABLE READ"}
                        )
                    yield session
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise DatabaseError("Database operation failed", e) from e
                except Exception:
                    await session.rollback()
                    raise

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False
