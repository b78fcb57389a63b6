"""
Database Session Management
===========================

SQLAlchemy engine/session handling. A `Database` is constructed explicitly
(by the app factory, a script or a test) and handed to whoever needs it; the
engine is created on first use and reused for the life of the process.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .models import Base


def _create_engine_for_url(database_url: str, echo: bool = False, connect_timeout: int = 5) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args={"connect_timeout": connect_timeout},
        echo=echo,
    )


class Database:
    """
    Handle to the record store.

    Usage:
        database = Database("sqlite:///./dossier.db")
        database.create_all()
        with database.session() as db:
            db.query(User).all()
    """

    def __init__(self, url: str, echo: bool = False, connect_timeout: int = 5):
        self.url = url
        self._echo = echo
        self._connect_timeout = connect_timeout
        self._engine: Optional[Engine] = None
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(settings.database_url, echo=settings.sql_echo, connect_timeout=settings.db_connect_timeout)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = _create_engine_for_url(self.url, self._echo, self._connect_timeout)
            self._session_factory.configure(bind=self._engine)
        return self._engine

    def new_session(self) -> Session:
        """Open a session the caller must close."""
        # Ensure the session factory is bound
        _ = self.engine
        return self._session_factory()

    def create_all(self) -> None:
        """Create tables that don't exist yet"""
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        """Drop all tables (tests only)"""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory.configure(bind=None)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for a unit of work: commit on success, rollback on error.
        """
        db = self.new_session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
