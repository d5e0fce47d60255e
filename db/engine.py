"""SQLAlchemy engine utilities."""

import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

DEFAULT_DB_NAME = "careassist.db"


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def resolve_db_path() -> Path:
    """Return the database file from ``CAREASSIST_DB_PATH`` or ``./careassist.db``."""

    env_path = os.environ.get("CAREASSIST_DB_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.cwd() / DEFAULT_DB_NAME).resolve()


def get_engine(db_path: Path | None = None) -> Engine:
    """Return an engine bound to ``db_path`` (resolved from the environment by default)."""

    path = db_path or resolve_db_path()
    return create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
        echo=False,
    )
