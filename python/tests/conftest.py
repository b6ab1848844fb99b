"""Pytest configuration and fixtures for kbase tests.

Test isolation strategy:
- Every test gets its own SQLite database file under tmp_path, created from
  the ORM metadata with foreign keys enforced
- Blob storage is a FakeBlobStore per test
- API tests use FastAPI's TestClient with get_db overridden to the test database
"""

import os
from collections.abc import Generator
from pathlib import Path

# Settings are read from the environment; pin them before anything caches them
os.environ["KBASE_ENV"] = "test"
os.environ["BLOB_BACKEND"] = "memory"
os.environ["LOG_JSON"] = "false"
os.environ.pop("BASIC_AUTH_USER", None)
os.environ.pop("BASIC_AUTH_PASSWORD", None)

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from kbase.app import add_request_id_middleware, create_app
from kbase.config import clear_settings_cache
from kbase.db.engine import create_db_engine
from kbase.db.models import Base
from kbase.db.repository import MetadataRepository
from kbase.db.session import create_session_factory, get_db
from kbase.services.articles import ArticleService
from kbase.storage.client import FakeBlobStore
from kbase.storage.content import ArticleContentStore


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings around every test so monkeypatched env vars apply."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Create a fresh SQLite database with the full schema."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'kbase_test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db_session: Session) -> MetadataRepository:
    return MetadataRepository(db_session)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def content_store(blob_store: FakeBlobStore) -> ArticleContentStore:
    return ArticleContentStore(blob_store)


@pytest.fixture
def article_service(
    repo: MetadataRepository, content_store: ArticleContentStore
) -> ArticleService:
    return ArticleService(repo, content_store)


def _build_app(
    session_factory: sessionmaker[Session],
    blob_store: FakeBlobStore,
    skip_auth_middleware: bool,
) -> FastAPI:
    app = create_app(skip_auth_middleware=skip_auth_middleware, blob_store=blob_store)
    add_request_id_middleware(app, log_requests=False)

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def app(session_factory: sessionmaker[Session], blob_store: FakeBlobStore) -> FastAPI:
    """App without the Basic Auth gate, bound to the per-test database."""
    return _build_app(session_factory, blob_store, skip_auth_middleware=True)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def auth_client(
    monkeypatch: pytest.MonkeyPatch,
    session_factory: sessionmaker[Session],
    blob_store: FakeBlobStore,
) -> Generator[TestClient, None, None]:
    """Test client for an app with Basic Auth enabled (editor / s3cret)."""
    monkeypatch.setenv("BASIC_AUTH_USER", "editor")
    monkeypatch.setenv("BASIC_AUTH_PASSWORD", "s3cret")
    clear_settings_cache()

    app = _build_app(session_factory, blob_store, skip_auth_middleware=False)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
