"""Shared test fixtures for the StudyShelf backend test suite.

Tests run against a throwaway SQLite database and a temporary storage root,
both configured through environment variables before any app import. Each
test starts from empty tables and an empty storage tree.

User 1 is a regular (physical-only) user, user 2 a premium (mirrored) one;
the default ``STORAGE_MODE_POLICY=per_user`` decides their modes.
"""

import os
import shutil
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="studyshelf-tests-"))

# Force auth off and point storage and the database at the temp dir before any app imports.
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", f"sqlite:///{_TMP / 'test.db'}")
os.environ["AUTH_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "text"
os.environ["STORAGE_ROOT"] = str(_TMP / "users")
os.environ["UPLOADS_DIR"] = str(_TMP / "uploads")
os.environ["STORAGE_MODE_POLICY"] = "per_user"

import pytest
from sqlalchemy import text
from fastapi.testclient import TestClient

from studyshelf.database import get_db, SessionLocal
from studyshelf.main import app
from studyshelf.core.config import settings
from studyshelf.core.concurrency import limiter
from studyshelf.models import User
from studyshelf.services import DirectoryService, DocumentService, StorageMode
from studyshelf.storage import build_store

FREE_USER_ID = 1
PREMIUM_USER_ID = 2

# Deleted in this order to satisfy foreign keys.
_CLEAN_TABLES = ["documents", "directories", "users"]

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


def _reset_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


@pytest.fixture(autouse=True)
def _clean_state():
    """Empty tables and storage before each test (not after, to keep failures inspectable)."""
    db = SessionLocal()
    try:
        for table in _CLEAN_TABLES:
            db.execute(text(f"DELETE FROM {table}"))
        db.commit()
    finally:
        db.close()
    _reset_dir(settings.storage_root_path)
    _reset_dir(settings.uploads_path)
    limiter._inflight.clear()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def store():
    return build_store(settings)


@pytest.fixture()
def resolver(store):
    return store.resolver


@pytest.fixture()
def free_user(db) -> int:
    db.add(User(id=FREE_USER_ID, display_name="free", is_premium=False))
    db.commit()
    return FREE_USER_ID


@pytest.fixture()
def premium_user(db) -> int:
    db.add(User(id=PREMIUM_USER_ID, display_name="premium", is_premium=True))
    db.commit()
    return PREMIUM_USER_ID


@pytest.fixture()
def free_headers(free_user) -> dict:
    return {"X-User-Id": str(free_user)}


@pytest.fixture()
def premium_headers(premium_user) -> dict:
    return {"X-User-Id": str(premium_user)}


@pytest.fixture()
def user_root(resolver):
    """Absolute sandbox root of a user id."""
    return resolver.root_for


@pytest.fixture()
def pdf_bytes() -> bytes:
    return PDF_BYTES


@pytest.fixture()
def mirrored_dirs(db, store, premium_user):
    return DirectoryService(db, premium_user, StorageMode.MIRRORED, store)


@pytest.fixture()
def physical_dirs(db, store, free_user):
    return DirectoryService(db, free_user, StorageMode.PHYSICAL_ONLY, store)


@pytest.fixture()
def mirrored_docs(db, store, premium_user):
    return DocumentService(db, premium_user, StorageMode.MIRRORED, store)


@pytest.fixture()
def physical_docs(db, store, free_user):
    return DocumentService(db, free_user, StorageMode.PHYSICAL_ONLY, store)
