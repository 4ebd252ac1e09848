"""PostgreSQL engine, session factory, and helpers for classifying driver errors."""

from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

# SQLSTATE raised by PostgreSQL for unique_violation.
PG_UNIQUE_VIOLATION = "23505"

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    True if the IntegrityError was caused by a unique constraint or unique index.

    Uses the SQLSTATE when the driver exposes one (psycopg2); otherwise falls back
    to the driver message (e.g. sqlite3 "UNIQUE constraint failed").
    """
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None)
    if pgcode:
        return pgcode == PG_UNIQUE_VIOLATION
    return "unique" in str(orig or exc).lower()
