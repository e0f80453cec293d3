# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

This package provides SQLAlchemy async connections to the shared relational
store: PostgreSQL (asyncpg) in deployments, SQLite (aiosqlite) for tests and
embedded use.

Example:
    from sonoreview.infrastructure.database import get_session, init_database

    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(Protocol))
"""

from sonoreview.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_engine_for_url,
    create_schema,
    create_sessionmaker,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "create_engine_for_url",
    "create_schema",
    "create_sessionmaker",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
