from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from printstack.db.base import Base


class BlobEntry(Base):
    """One key of the key-value blob store (the app's "local storage")."""

    __tablename__ = "kv_blobs"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
