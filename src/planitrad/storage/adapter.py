from contextlib import contextmanager
from typing import Generator, Optional
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from planitrad.platform.config import settings
from .models import Base

logger = logging.getLogger(__name__)


class SqlAdapter:
    """
    SQLAlchemy engine and session provider.

    SQLite in-memory URLs share a single connection so every session sees the
    same database.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.DATABASE_URL
        self._engine = None
        self._session_factory = None

    @property
    def engine(self):
        if not self._engine:
            raise ConnectionError("Database is not connected. Call connect() first.")
        return self._engine

    def connect(self) -> None:
        if self._engine:
            return

        try:
            logger.info(f"Connecting to database at {self.url}")

            if self.url.startswith("sqlite"):
                options = {"connect_args": {"check_same_thread": False}}
                if ":memory:" in self.url or self.url == "sqlite://":
                    options["poolclass"] = StaticPool
            else:
                options = {
                    "pool_size": settings.DATABASE_POOL_SIZE,
                    "max_overflow": settings.DATABASE_MAX_OVERFLOW,
                    "pool_pre_ping": True,
                }
            self._engine = create_engine(self.url, **options)

            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
            logger.info("Database connection pool established.")

        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    def create_all(self) -> None:
        """Create the planning tables (local dev and tests)."""
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection pool closed.")

    def health_check(self) -> bool:
        if not self._engine:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("database unhealthy")
            return False

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.
        """
        if not self._session_factory:
            raise ConnectionError("Database is not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
