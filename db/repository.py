"""
Thin CRUD wrapper around SQLAlchemy sessions for the local key-value store.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from db.engine import Base, get_engine, resolve_db_path
from db.models import StoredValueORM

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None
_engine_path: Optional[Path] = None


def init_db(engine: Engine) -> None:
    """
    Ensure all ORM models are imported and create database tables on the provided engine.

    Parameters:
        engine: A SQLAlchemy Engine to which the metadata will be bound for table creation.
    """
    from db import models  # noqa: F401 – ensure model import for metadata

    Base.metadata.create_all(engine)


@contextmanager
def session_scope():
    """
    Provide a transactional database session scoped to the current engine.

    If the CAREASSIST_DB_PATH environment variable or the current working directory changes,
    reinitializes the engine and session factory bound to the corresponding database file
    before yielding a session. The context commits the transaction on successful exit,
    rolls back and re-raises on exception, and always closes the session.

    Returns:
        db (Session): A SQLAlchemy Session bound to the active engine.
    """
    global _engine, _SessionLocal, _engine_path

    desired_path = resolve_db_path()
    if _engine is None or desired_path != _engine_path:
        if _engine is not None:
            _engine.dispose()
        _engine = get_engine(desired_path)
        _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)
        _engine_path = desired_path
        init_db(_engine)

    db = _SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

# ---------- CRUD -----------------------------------------------------

def get_value(key: str) -> Optional[str]:
    """Return the stored value for ``key`` or ``None`` when absent."""
    with session_scope() as db:
        row = db.get(StoredValueORM, key)
        return row.value if row else None


def set_value(key: str, value: str) -> None:
    """Insert or replace the value stored under ``key``."""
    with session_scope() as db:
        row = db.get(StoredValueORM, key)
        if row is None:
            db.add(StoredValueORM(key=key, value=value))
        else:
            row.value = value
            row.updated_at = datetime.now(timezone.utc)


def delete_value(key: str) -> bool:
    """Remove ``key``; return whether anything was deleted."""
    with session_scope() as db:
        row = db.get(StoredValueORM, key)
        if row is None:
            return False
        db.delete(row)
        return True
