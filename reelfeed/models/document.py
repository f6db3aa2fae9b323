"""SQLAlchemy ORM model for documents held by the SQL document store."""
from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, String

from reelfeed.database import Base

from .base import TimestampMixin


class StoredDocument(TimestampMixin, Base):
    __tablename__ = "documents"

    path = Column(String(1024), primary_key=True)
    collection = Column(String(1024), nullable=False, index=True)
    doc_id = Column(String(255), nullable=False)
    fields = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)


__all__ = ["StoredDocument"]
