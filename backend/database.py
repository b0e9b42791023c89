"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def is_sqlite(db: Session) -> bool:
    """Return True if the session is bound to a SQLite database."""
    return db.get_bind().dialect.name == "sqlite"


def acquire_write_lock(db: Session) -> None:
    """Start the session's transaction holding the database write lock.

    On SQLite, ``BEGIN IMMEDIATE`` takes the RESERVED lock up front so
    that a read-modify-write cycle cannot interleave with another
    writer, in this process or any other. Other backends rely on the
    row-version check on ``investment_accounts`` instead.

    The session must not have pending writes when this is called;
    SQLite refuses to nest transactions.
    """
    if is_sqlite(db):
        db.execute(text("BEGIN IMMEDIATE"))


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    connect_args = {}
    database_url = settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # Writers queue on the SQLite lock for this long before failing
        connect_args["timeout"] = settings.SQLITE_BUSY_TIMEOUT_SECONDS

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )
    logger.debug("Database engine created for %s", engine.url.render_as_string())
    return engine


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create all tables that do not exist yet."""
    import models  # noqa: F401  (registers mappers on Base.metadata)

    Base.metadata.create_all(bind=get_engine())


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Reads: services query, nothing is committed
    - Mutations: ``AccountMutator`` owns the unit of work and commits or
      rolls back itself; route handlers never commit
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
