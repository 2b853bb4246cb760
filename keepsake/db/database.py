"""
Database engine and session management.

One SQLAlchemy session per request; `get_db` hands it to route handlers
and closes it afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for the configured URL.

    SQLite needs `check_same_thread=False` because FastAPI runs sync handlers
    in a threadpool; an in-memory SQLite database additionally needs a single
    shared connection or every session would see an empty database.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    if url.database in (None, "", ":memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args={"check_same_thread": False})


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables that don't exist yet."""
    # Register models on Base.metadata
    from keepsake.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready")


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: a session bound to the app's engine."""
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
