"""
Document Store Interface

This module defines the storage capability the table services depend on: a
collection of schemaless documents addressed by string ids. Request handlers
receive a store instance through dependency injection; nothing in the services
reaches for a process-wide client.

The SQL implementation keeps each document as a JSON value in the
``documents`` table. Iteration order is insertion order. Fields whose value is
``SERVER_TIMESTAMP`` are replaced with the store's clock at write time.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sheetstore.models.document import StoredDocument

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Sentinel resolved to the write time by the store"""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class StorageError(Exception):
    """Raised when the underlying document store rejects or fails an operation"""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


@dataclass
class DocumentSnapshot:
    """A document as read from the store"""
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Serialize a write time for storage.

    Fixed-width ISO-8601 in UTC, so string order is chronological order.
    """
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class DocumentStore(ABC):
    """
    Abstract document collection.

    Implementations must:
    - keep a stable iteration order for ``query``
    - resolve ``SERVER_TIMESTAMP`` values once per write
    - raise ``StorageError`` for any backend failure
    """

    @abstractmethod
    def get(self, document_id: str) -> Optional[DocumentSnapshot]:
        """Return the document or None if it does not exist"""
        pass

    @abstractmethod
    def set(self, document_id: str, data: Dict[str, Any]) -> None:
        """Create the document or replace all of its fields"""
        pass

    @abstractmethod
    def create(self, document_id: str, data: Dict[str, Any]) -> None:
        """Create a new document; fails with StorageError if the id is taken"""
        pass

    @abstractmethod
    def merge(
        self,
        document_id: str,
        data: Dict[str, Any],
        defaults: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Shallow-merge fields into a document, creating it if needed.

        Args:
            document_id: Target document
            data: Fields to overwrite
            defaults: Fields written only when the document does not have them yet
        """
        pass

    @abstractmethod
    def delete(self, document_id: str) -> None:
        """Delete the document. Deleting a missing document is not an error."""
        pass

    @abstractmethod
    def query(
        self,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[DocumentSnapshot]:
        """
        Return every document in the collection.

        When ``order_by`` is given, documents lacking that field are excluded
        and the rest are sorted by it.
        """
        pass


class SQLDocumentStore(DocumentStore):
    """Document collection stored as JSON rows through a SQLAlchemy session"""

    def __init__(
        self,
        db: Session,
        collection: str,
        clock: Callable[[], datetime] = utc_now
    ):
        self.db = db
        self.collection = collection
        self.clock = clock

    def _find(self, document_id: str) -> Optional[StoredDocument]:
        return self.db.query(StoredDocument).filter(
            StoredDocument.collection == self.collection,
            StoredDocument.document_id == document_id
        ).first()

    def _resolve(self, data: Dict[str, Any]) -> Dict[str, Any]:
        stamp = format_timestamp(self.clock())
        return {key: stamp if value is SERVER_TIMESTAMP else value for key, value in data.items()}

    def _commit(self, action: str, document_id: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to {action} document '{document_id}': {str(e)}", document_id=document_id) from e

    def get(self, document_id: str) -> Optional[DocumentSnapshot]:
        try:
            row = self._find(document_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to read document '{document_id}': {str(e)}", document_id=document_id) from e
        if row is None:
            return None
        return DocumentSnapshot(id=row.document_id, data=dict(row.data or {}))

    def set(self, document_id: str, data: Dict[str, Any]) -> None:
        try:
            row = self._find(document_id)
            if row is None:
                self.db.add(StoredDocument(
                    collection=self.collection,
                    document_id=document_id,
                    data=self._resolve(data)
                ))
            else:
                row.data = self._resolve(data)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to write document '{document_id}': {str(e)}", document_id=document_id) from e
        self._commit("write", document_id)

    def create(self, document_id: str, data: Dict[str, Any]) -> None:
        # No lookup first: the unique constraint rejects a taken id
        self.db.add(StoredDocument(
            collection=self.collection,
            document_id=document_id,
            data=self._resolve(data)
        ))
        self._commit("create", document_id)
        logger.debug("Created document %s/%s", self.collection, document_id)

    def _apply_merge(
        self,
        document_id: str,
        data: Dict[str, Any],
        defaults: Optional[Dict[str, Any]]
    ) -> None:
        row = self._find(document_id)
        if row is None:
            merged = dict(defaults or {})
        else:
            merged = dict(row.data or {})
            for key, value in (defaults or {}).items():
                merged.setdefault(key, value)
        merged.update(data)

        if row is None:
            self.db.add(StoredDocument(
                collection=self.collection,
                document_id=document_id,
                data=self._resolve(merged)
            ))
        else:
            # Reassign so the JSON column is flagged dirty
            row.data = self._resolve(merged)
        self.db.commit()

    def merge(
        self,
        document_id: str,
        data: Dict[str, Any],
        defaults: Optional[Dict[str, Any]] = None
    ) -> None:
        try:
            try:
                self._apply_merge(document_id, data, defaults)
            except IntegrityError:
                # Another writer created the document between lookup and insert;
                # the retry finds it and updates in place
                self.db.rollback()
                logger.debug("Merge of %s/%s raced a create, retrying as update", self.collection, document_id)
                self._apply_merge(document_id, data, defaults)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to merge document '{document_id}': {str(e)}", document_id=document_id) from e
        logger.debug("Merged document %s/%s", self.collection, document_id)

    def delete(self, document_id: str) -> None:
        try:
            self.db.query(StoredDocument).filter(
                StoredDocument.collection == self.collection,
                StoredDocument.document_id == document_id
            ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to delete document '{document_id}': {str(e)}", document_id=document_id) from e
        self._commit("delete", document_id)

    def query(
        self,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[DocumentSnapshot]:
        try:
            rows = self.db.query(StoredDocument).filter(
                StoredDocument.collection == self.collection
            ).order_by(StoredDocument.id).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to query collection '{self.collection}': {str(e)}") from e

        snapshots = [DocumentSnapshot(id=row.document_id, data=dict(row.data or {})) for row in rows]
        if order_by is None:
            return snapshots

        snapshots = [snapshot for snapshot in snapshots if snapshot.data.get(order_by) is not None]
        return sorted(snapshots, key=lambda snapshot: snapshot.data[order_by], reverse=descending)
