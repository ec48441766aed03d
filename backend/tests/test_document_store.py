"""Tests for the SQL-backed document store."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session, sessionmaker

from sheetstore.services.document_store import (
    SERVER_TIMESTAMP,
    SQLDocumentStore,
    StorageError,
)


def test_get_missing_document_returns_none(store: SQLDocumentStore) -> None:
    assert store.get("nope") is None


def test_create_then_get(store: SQLDocumentStore) -> None:
    store.create("doc-1", {"fileName": "a.xlsx", "rowCount": 2})

    snapshot = store.get("doc-1")

    assert snapshot is not None
    assert snapshot.id == "doc-1"
    assert snapshot.data == {"fileName": "a.xlsx", "rowCount": 2}


def test_create_rejects_taken_id(store: SQLDocumentStore) -> None:
    store.create("doc-1", {"n": 1})

    with pytest.raises(StorageError):
        store.create("doc-1", {"n": 2})

    # The failed write is rolled back and the store stays usable
    assert store.get("doc-1").data == {"n": 1}


def test_server_timestamp_resolved_once_per_write(store: SQLDocumentStore) -> None:
    store.create("doc-1", {"uploadedAt": SERVER_TIMESTAMP, "updatedAt": SERVER_TIMESTAMP})

    data = store.get("doc-1").data

    assert data["uploadedAt"] == data["updatedAt"]
    assert data["uploadedAt"].startswith("2026-01-01T12:00:00")


def test_set_replaces_all_fields(store: SQLDocumentStore) -> None:
    store.set("doc-1", {"a": 1, "b": 2})
    store.set("doc-1", {"c": 3})

    assert store.get("doc-1").data == {"c": 3}


def test_merge_keeps_unrelated_fields(store: SQLDocumentStore) -> None:
    store.set("doc-1", {"a": 1, "sibling": "keep me"})

    store.merge("doc-1", {"a": 2})

    assert store.get("doc-1").data == {"a": 2, "sibling": "keep me"}


def test_merge_defaults_only_fill_absent_fields(store: SQLDocumentStore) -> None:
    store.merge("doc-1", {"v": 1}, defaults={"first": SERVER_TIMESTAMP})
    first = store.get("doc-1").data["first"]

    store.merge("doc-1", {"v": 2}, defaults={"first": SERVER_TIMESTAMP})

    data = store.get("doc-1").data
    assert data["v"] == 2
    assert data["first"] == first


def test_delete_is_idempotent(store: SQLDocumentStore) -> None:
    store.create("doc-1", {"n": 1})

    store.delete("doc-1")
    store.delete("doc-1")
    store.delete("never-existed")

    assert store.get("doc-1") is None


def test_query_preserves_insertion_order(store: SQLDocumentStore) -> None:
    for name in ["c", "a", "b"]:
        store.create(name, {"name": name})

    assert [snapshot.id for snapshot in store.query()] == ["c", "a", "b"]


def test_query_order_by_excludes_documents_without_field(store: SQLDocumentStore) -> None:
    store.create("old", {"stamp": SERVER_TIMESTAMP})
    store.create("unstamped", {"other": True})
    store.create("new", {"stamp": SERVER_TIMESTAMP})

    ordered = store.query(order_by="stamp", descending=True)

    assert [snapshot.id for snapshot in ordered] == ["new", "old"]


def test_collections_are_isolated(db_session: Session, store: SQLDocumentStore) -> None:
    other = SQLDocumentStore(db_session, "other_collection")
    other.create("doc-1", {"n": "other"})
    store.create("doc-1", {"n": "mine"})

    assert store.get("doc-1").data == {"n": "mine"}
    assert [snapshot.id for snapshot in other.query()] == ["doc-1"]
    assert other.get("doc-1").data == {"n": "other"}


def test_merge_recovers_when_a_concurrent_writer_creates_the_document(
    session_factory: sessionmaker, store: SQLDocumentStore, monkeypatch
) -> None:
    other_session = session_factory()
    other = SQLDocumentStore(other_session, store.collection, clock=store.clock)
    lookup = store._find
    lookups = []

    def _lookup_before_other_writer(document_id: str):
        lookups.append(document_id)
        if len(lookups) == 1:
            # The other writer lands after this store saw no document
            other.merge(document_id, {"owner": "other", "v": 0}, defaults={"uploadedAt": SERVER_TIMESTAMP})
            return None
        return lookup(document_id)

    monkeypatch.setattr(store, "_find", _lookup_before_other_writer)
    try:
        store.merge("slot", {"v": 1}, defaults={"uploadedAt": SERVER_TIMESTAMP})
        first_upload = other.get("slot").data["uploadedAt"]
    finally:
        other_session.close()

    data = store.get("slot").data
    assert lookups == ["slot", "slot", "slot"]
    assert data["v"] == 1
    assert data["owner"] == "other"
    assert data["uploadedAt"] == first_upload


def test_storage_error_names_the_document(store: SQLDocumentStore) -> None:
    store.create("doc-1", {"n": 1})

    with pytest.raises(StorageError) as excinfo:
        store.create("doc-1", {"n": 2})

    assert excinfo.value.document_id == "doc-1"


def test_documents_table_keeps_timestamps_in_data_only() -> None:
    from sheetstore.models import StoredDocument

    assert set(StoredDocument.__table__.columns.keys()) == {"id", "collection", "document_id", "data"}
