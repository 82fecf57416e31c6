"""
Database connection/session configuration for the FastAPI app.
Uses SQLAlchemy; PostgreSQL in production, SQLite for local runs and tests.

The engine and session factory live on an explicitly constructed
``Database`` object that the application creates at startup and disposes
at shutdown.
"""

import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Database:
    """
    Owns the SQLAlchemy engine (and its connection pool) for the process.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_recycle: int = 3600,
        isolation_level: str = None,
    ):
        engine_kwargs = {"pool_pre_ping": True}
        if isolation_level:
            engine_kwargs["isolation_level"] = isolation_level

        if url.startswith("sqlite"):
            # SQLite connections are used from the threadpool FastAPI runs sync routes in.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=pool_recycle,
            )

        self.engine = create_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database ping failed")
            return False

    def dispose(self) -> None:
        self.engine.dispose()


# PUBLIC_INTERFACE
def get_db(request: Request) -> Iterator[Session]:
    """
    Yields a new database session from the application's Database handle.
    The session is always closed, which returns its connection to the pool.
    """
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
