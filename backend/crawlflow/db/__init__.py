"""Database engine and session management."""

from crawlflow.db.session import async_session, close_db, engine, get_db, init_db

__all__ = [
    "async_session",
    "close_db",
    "engine",
    "get_db",
    "init_db",
]
