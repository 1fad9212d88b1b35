from __future__ import annotations

from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ledgr.core.settings import settings


def engine_options(database_url: str) -> dict[str, Any]:
    if database_url.startswith("sqlite"):
        # TestClient and the threadpool hand one connection across threads.
        return {"future": True, "connect_args": {"check_same_thread": False}}
    return {
        "future": True,
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
    }


def build_engine(database_url: str, **overrides: Any) -> Engine:
    return create_engine(database_url, **{**engine_options(database_url), **overrides})


def build_sessionmaker(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False, class_=Session)


engine = build_engine(settings.database_url)
SessionLocal = build_sessionmaker(engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request; uncommitted work is rolled back on the way out."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
