"""Document store model"""
from sqlalchemy import Column, Integer, String, JSON, UniqueConstraint
from sheetstore.database import Base


class StoredDocument(Base):
    """A schemaless JSON document addressed by (collection, document_id)"""
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)  # Insertion order, used as iteration order
    collection = Column(String, nullable=False, index=True)
    document_id = Column(String, nullable=False)
    data = Column(JSON, nullable=False, default=dict)  # Timestamps live here, written by the store

    # One document per id within a collection
    __table_args__ = (
        UniqueConstraint('collection', 'document_id', name='uq_document_collection_id'),
    )
