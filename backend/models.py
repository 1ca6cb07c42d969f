"""
SQLAlchemy models for the AERA engine

The whole application state lives in one JSON document per key. The
revision column backs the optimistic write check in store_engine.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from database import Base


class StoreDocument(Base):
    """Serialized root aggregate (users, orgs, inventories, requests)"""
    __tablename__ = "store_documents"

    key = Column(String(100), primary_key=True)
    body = Column(Text, nullable=False)
    revision = Column(Integer, nullable=False, default=1)   # Bumped on every successful save
    updated_at = Column(DateTime(timezone=True), default=func.current_timestamp(),
                        onupdate=func.current_timestamp())
