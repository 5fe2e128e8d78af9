"""Pytest configuration and fixtures for Parley tests.

Test isolation strategy:
- Every test that touches the database gets its own in-memory SQLite engine
  with the ORM schema created from metadata
- The engine uses a single shared connection so sessions used from worker
  threads (run_in_threadpool, TestClient) see the same data
- Storage is a FakeStorageClient; LLM HTTP calls are mocked with respx
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Settings are read lazily, but the values must exist before the first read
os.environ.setdefault("PARLEY_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-openai")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from parley.app import add_request_id_middleware, create_app
from parley.config import Settings, clear_settings_cache
from parley.db.engine import create_db_engine
from parley.db.models import Base
from parley.db.session import create_session_factory, get_db
from parley.storage.client import FakeStorageClient


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database with the full schema."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the test engine."""
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def settings() -> Settings:
    """Settings built from explicit values, independent of the process env."""
    return Settings(
        PARLEY_ENV="test",
        DATABASE_URL="sqlite://",
        OPENAI_API_KEY="sk-test-openai",
        OPENROUTER_API_KEY="sk-test-openrouter",
    )


@pytest.fixture
def app(db_session: Session, storage: FakeStorageClient):
    """FastAPI app wired to the test session and fake storage."""
    app = create_app()
    app.state.storage_client = storage

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client; the lifespan builds the LLM router around a real httpx client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
