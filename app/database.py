from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings
from app.core.exception import ConflictException

# Configure database engine with appropriate settings
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite doesn't support connection pooling arguments
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.DEBUG
    )
else:
    # Configure connection pool for PostgreSQL/MySQL
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,   # Recycle connections after 1 hour
        pool_size=10,
        max_overflow=20,
        connect_args={"connect_timeout": 10},
        echo=settings.DEBUG
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def enable_sqlite_foreign_keys(target_engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


def get_db():
    """
    Database session dependency for FastAPI.
    Properly manages session lifecycle - creates, yields, and closes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, conflict_message: str = "The request conflicts with the current state.") -> Iterator[Session]:
    """
    Run a block of writes as one transaction.

    Commits when the block finishes, rolls back on any exception. A unique or
    foreign key violation means a concurrent request got there first, so it
    is reported as a conflict instead of a server error.

    Example:
        with atomic(self.db, "User already belongs to a household"):
            self.db.add(household)
            self.db.flush()
            self.db.add(member)
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException(conflict_message) from exc
    except Exception:
        db.rollback()
        raise
