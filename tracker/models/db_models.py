from sqlalchemy import JSON, Column, DateTime, Index, String

from tracker.db import Base


class StoredDocument(Base):
    __tablename__ = "documents"

    id = Column(String(64), primary_key=True)
    collection = Column(String(512), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_documents_collection_created_at", "collection", "created_at"),
    )
