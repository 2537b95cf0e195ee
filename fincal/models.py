from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Text,
    JSON,
    Index,
)

from .database import Base


class StoredDocument(Base):
    """A serialized JSON array kept under a well-known key."""

    __tablename__ = "stored_documents"

    key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False, default="[]")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserData(Base):
    """Per-user cloud document holding accounts, balances and calendar events."""

    __tablename__ = "user_data"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    accounts = Column(JSON)
    balances = Column(JSON)
    calendar_events = Column(JSON)

    __table_args__ = (Index("ix_user_data_user_id", "user_id", unique=True),)
