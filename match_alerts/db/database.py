from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from match_alerts.config import get_settings


class Base(DeclarativeBase):
    pass


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine, making sure the directory of a file-backed SQLite database exists."""
    url = make_url(database_url or get_settings().database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    # APScheduler runs ticks on worker threads
    connect_args = {"check_same_thread": False} if url.get_backend_name() == "sqlite" else {}
    return create_engine(url, connect_args=connect_args)


def get_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # Import models so their tables are registered on Base.metadata
    import match_alerts.models  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("Database initialized")
