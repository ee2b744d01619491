"""
Async SQLAlchemy engine & session factory (aiosqlite driver).
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from kiosk.core.config import settings

engine_args: dict = {
    "echo": False,
}

if settings.DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}
else:
    engine_args.update(
        {
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 5,
        }
    )

engine = create_async_engine(
    settings.DATABASE_URL,
    **engine_args,
)


@event.listens_for(engine.sync_engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, _record) -> None:
    """SQLite only enforces foreign keys when asked to, per connection."""
    if settings.DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
