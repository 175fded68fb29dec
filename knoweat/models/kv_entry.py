from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from knoweat.database import Base


class KeyValueEntry(Base):
    """One JSON document in the local store (menu history, user profile)."""
    __tablename__ = "kv_entries"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
