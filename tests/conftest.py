"""Shared pytest fixtures for reelfeed tests."""
from __future__ import annotations

import os
from typing import Iterator

import pytest

# Settings and the SQLAlchemy engine are created on import; configure them first.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_reelfeed.db")
os.environ.setdefault("JWT_SECRET_KEY", "reelfeed-test-secret")
os.environ.setdefault("DOCUMENT_STORE", "sql")
os.environ.setdefault("SEED_INITIAL_VIDEOS", "true")

from sqlalchemy import delete  # noqa: E402

from reelfeed.database import Base, engine, session_scope  # noqa: E402
from reelfeed.models import StoredDocument  # noqa: E402
from reelfeed.schemas import Video  # noqa: E402
from reelfeed.services import EngagementLedger, InMemoryDocumentStore, LocalIdentityProvider  # noqa: E402

APP_ID = "test-app"


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clean_documents() -> Iterator[None]:
    """Remove every stored document before and after a test."""

    with session_scope() as session:
        session.execute(delete(StoredDocument))
    yield
    with session_scope() as session:
        session.execute(delete(StoredDocument))


@pytest.fixture
def app_id() -> str:
    return APP_ID


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def identity() -> LocalIdentityProvider:
    return LocalIdentityProvider("alice")


@pytest.fixture
def ledger(store: InMemoryDocumentStore, identity: LocalIdentityProvider) -> Iterator[EngagementLedger]:
    instance = EngagementLedger(store, identity, app_id=APP_ID)
    yield instance
    instance.close()


def make_video(video_id: str, title: str = "", description: str = "", category: str | None = None) -> Video:
    return Video(id=video_id, title=title or f"Video {video_id}", description=description, category=category)


@pytest.fixture
def video_factory():
    return make_video
