from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings
from .models import Base


def make_engine(url: str) -> Engine:
    """Create an engine for ``url``; in-memory SQLite shares one connection."""

    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


def init_db(engine: Engine) -> None:
    """Create all tables on ``engine`` if they do not exist."""

    Base.metadata.create_all(bind=engine)


# Shared database engine and session factory for the application.
engine = make_engine(get_settings().database_url)
SessionLocal = make_sessionmaker(engine)

__all__ = ["SessionLocal", "engine", "init_db", "make_engine", "make_sessionmaker"]
