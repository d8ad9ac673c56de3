"""Database session factory and configuration.

Provides database connectivity and session management for the document
control backend. Services receive a Session and never commit on their own:
the request handler (or the get_db_session context manager) owns the
transaction, so a failed composite operation leaves no partial state.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from config import get_settings

DATABASE_URL = get_settings().DATABASE_URL

# Pool settings only apply to PostgreSQL (not SQLite)
_engine_kwargs = {
    "pool_pre_ping": True,  # Verify connections before using
    "echo": False,
}

if DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    _engine_kwargs["pool_size"] = 5
    _engine_kwargs["max_overflow"] = 10


def use_immediate_transactions(target: Engine) -> Engine:
    """Make SQLite transactions take the write lock when they begin.

    pysqlite defers BEGIN until the first write, so two transactions can
    both read and then deadlock upgrading to a write lock. BEGIN IMMEDIATE
    queues writers up front, which is what counter allocation and checkout
    rely on. PostgreSQL row locks need no such help.
    """
    @event.listens_for(target, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return target


engine = create_engine(DATABASE_URL, **_engine_kwargs)
if DATABASE_URL.startswith("sqlite"):
    use_immediate_transactions(engine)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            DocumentStore(session, company_id).get(principal, document_id)

    Automatically commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Endpoints commit on success. Any exception escaping the endpoint rolls
    the whole request back.

    Usage:
        @router.get("/folders")
        def list_folders(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
