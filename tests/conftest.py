"""Common test fixtures for notemerge."""

import pytest

from notemerge.config import config
from notemerge.models.db_models import get_session_factory, init_db
from notemerge.observability import metrics
from notemerge.services.import_service import ImportService
from notemerge.storage.note_store import NoteStore


@pytest.fixture
def max_body_length():
    """Small split threshold so split tests stay readable."""
    return 50


@pytest.fixture
def engine():
    """In-memory database with the schema created."""
    engine = init_db(in_memory=True)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def store(session_factory):
    """A store bound to one open session, rolled back after the test."""
    session = session_factory()
    try:
        yield NoteStore(session)
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def import_service(session_factory, max_body_length):
    """Create a test ImportService with a small split threshold."""
    return ImportService(
        session_factory=session_factory,
        max_body_length=max_body_length,
    )


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "test.db")
    monkeypatch.setattr(config, "in_memory_db", False)
    yield config


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()
