"""
Key-value table standing in for the browser's local storage.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from db.engine import Base


class StoredValueORM(Base):
    __tablename__ = "local_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
