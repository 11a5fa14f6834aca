"""Database connection and session management."""
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .config import get_settings


@lru_cache
def get_engine() -> Engine:
    """
    Build the process-wide engine from settings on first use.

    Returns:
        Engine: SQLAlchemy engine
    """
    settings = get_settings()
    kwargs = {"echo": settings.database_echo, "pool_pre_ping": True}

    if settings.database_url.startswith("sqlite"):
        # Route handlers run in a threadpool
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_size=3,                 # Base pool of 3 connections
            max_overflow=7,              # Allow up to 10 total connections
            pool_recycle=3600,           # Recycle connections every hour
            pool_timeout=30,             # Timeout after 30 seconds
        )

    return create_engine(settings.database_url, **kwargs)


@lru_cache
def get_sessionmaker() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
