"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os

# Keep the module-level engine off the filesystem
os.environ["DATABASE_URL"] = "sqlite://"

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sheetstore.config import COLLECTION_NAME
from sheetstore.database import Base, build_engine, init_db
from sheetstore.main import app
from sheetstore.services.document_store import SQLDocumentStore
from sheetstore.utils import get_document_store


class TickingClock:
    """Deterministic clock that moves forward on every read."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    """Provide a session factory bound to a private in-memory SQLite database."""

    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def store(db_session: Session, clock: TickingClock) -> SQLDocumentStore:
    return SQLDocumentStore(db_session, COLLECTION_NAME, clock=clock)


@pytest.fixture()
def client(session_factory: sessionmaker, clock: TickingClock) -> Iterator[TestClient]:
    """Provide a test client whose requests share the in-memory database."""

    def _override_store() -> Iterator[SQLDocumentStore]:
        db = session_factory()
        try:
            yield SQLDocumentStore(db, COLLECTION_NAME, clock=clock)
        finally:
            db.close()

    app.dependency_overrides[get_document_store] = _override_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
