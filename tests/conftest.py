import os

os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
from fastapi.testclient import TestClient

from entity_api.db import models
from entity_api.db.database import SessionLocal, engine
from entity_api.utils.settings import refresh_settings_cache


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; clear them around each test."""
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture
def db_session():
    """Session on a freshly created in-memory schema."""
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        models.Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    from entity_api.api.main import app

    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()
